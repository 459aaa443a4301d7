"""
Configuration management for Track Catalog
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

SORT_KEYS = ("key", "tempo", "title", "duration", "artist")
SORT_DIRECTIONS = ("asc", "desc")


@dataclass
class LibraryConfig:
    """Configuration for music library settings."""

    library_paths: List[str] = field(
        default_factory=lambda: [str(Path.home() / "Music")]
    )
    supported_formats: List[str] = field(
        default_factory=lambda: [
            ".mp3",
            ".m4a",
            ".flac",
            ".wav",
            ".aiff",
            ".ogg",
            ".opus",
        ]
    )
    scan_recursive: bool = True


@dataclass
class ImportConfig:
    """Limits applied to DJ-software XML imports."""

    max_file_size_mb: int = 100
    generic_max_depth: int = 32  # Recursion cap for unknown XML layouts
    max_tracks: int = 100_000

    def validate(self) -> None:
        """Validate import limits.

        Raises:
            ValueError: If any limit is not a positive integer
        """
        for name in ("max_file_size_mb", "generic_max_depth", "max_tracks"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")


@dataclass
class LookupConfig:
    """Configuration for external metadata lookups."""

    match_threshold: float = 0.6  # Auto-apply at or above this score
    search_limit: int = 5

    def validate(self) -> None:
        """Validate lookup configuration values.

        Raises:
            ValueError: If threshold is outside [0, 1] or limit is not positive
        """
        if not 0.0 <= self.match_threshold <= 1.0:
            raise ValueError(
                f"match_threshold must be between 0 and 1, got {self.match_threshold}"
            )
        if self.search_limit <= 0:
            raise ValueError(f"search_limit must be positive, got {self.search_limit}")


@dataclass
class ViewConfig:
    """Default filtering and sorting for the collection view."""

    primary_sort: str = "key"
    primary_direction: str = "asc"
    secondary_sort: str = "tempo"
    secondary_direction: str = "asc"
    include_files_without_tempo: bool = True
    search_threshold: float = 0.4  # 0.0 = exact match only, 1.0 = match anything

    def validate(self) -> None:
        """Validate view configuration values.

        Raises:
            ValueError: If sort keys, directions, or threshold are invalid
        """
        for sort_key in (self.primary_sort, self.secondary_sort):
            if sort_key not in SORT_KEYS:
                raise ValueError(
                    f"Invalid sort key: {sort_key}. Valid keys are: {SORT_KEYS}"
                )
        for direction in (self.primary_direction, self.secondary_direction):
            if direction not in SORT_DIRECTIONS:
                raise ValueError(
                    f"Invalid sort direction: {direction}. "
                    f"Valid directions are: {SORT_DIRECTIONS}"
                )
        if not 0.0 <= self.search_threshold <= 1.0:
            raise ValueError(
                f"search_threshold must be between 0 and 1, got {self.search_threshold}"
            )


@dataclass
class SpotifyConfig:
    """Configuration for Spotify metadata lookups."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:8000/api/spotify/callback"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/track-catalog/track-catalog.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of backup files to keep
    console_output: bool = False  # Also output to console (for debugging)


@dataclass
class WebConfig:
    """Configuration for the web backend."""

    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000"]
    )


@dataclass
class Config:
    """Main configuration object."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)
    lookup: LookupConfig = field(default_factory=LookupConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    spotify: SpotifyConfig = field(default_factory=SpotifyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    web: WebConfig = field(default_factory=WebConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "track-catalog"
    return Path.home() / ".config" / "track-catalog"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    try:
        current = Path(__file__).resolve().parent
        for parent in [current] + list(current.parents):
            if (parent / "pyproject.toml").exists():
                config_path = parent / "config.toml"
                if config_path.exists():
                    return config_path
                return None
    except OSError:
        pass
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/track-catalog (or ~/.config/track-catalog)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "track-catalog"
    return Path.home() / ".local" / "share" / "track-catalog"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Track Catalog Configuration

[library]
# Paths to scan for audio files
library_paths = ["~/Music"]

# Supported audio file formats
supported_formats = [".mp3", ".m4a", ".flac", ".wav", ".aiff", ".ogg", ".opus"]

# Recursively scan subdirectories
scan_recursive = true

[imports]
# Reject DJ-software XML exports larger than this
max_file_size_mb = 100

# Maximum nesting depth searched in XML files of unknown layout
generic_max_depth = 32

# Maximum number of tracks read from a single export
max_tracks = 100000

[lookup]
# Spotify matches scoring at or above this are applied without confirmation
match_threshold = 0.6

# Number of Spotify candidates to score per lookup
search_limit = 5

[view]
# Sort keys: key, tempo, title, duration, artist
primary_sort = "key"
primary_direction = "asc"
secondary_sort = "tempo"
secondary_direction = "asc"

# Show tracks without BPM data when filtering by tempo
include_files_without_tempo = true

# Fuzzy search tolerance (0.0 = exact, 1.0 = match anything)
search_threshold = 0.4

[spotify]
# Spotify API credentials (https://developer.spotify.com/dashboard)
# client_id = "your-client-id-here"
# client_secret = "your-client-secret-here"
redirect_uri = "http://localhost:8000/api/spotify/callback"

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/track-catalog/track-catalog.log)
# log_file = "/path/to/custom/track-catalog.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of backup log files to keep
backup_count = 5

# Also output logs to console (useful for debugging)
console_output = false

[web]
host = "127.0.0.1"
port = 8000
allowed_origins = ["http://localhost:3000"]
""".strip()


def _validated(section, default):
    """Return section if it validates, otherwise the default section."""
    try:
        section.validate()
    except ValueError as e:
        print(f"Warning: Invalid {type(section).__name__} configuration: {e}")
        print("Using default values for this section.")
        return default
    return section


def parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML data, falling back to defaults per key."""
    config = Config()

    if "library" in toml_data:
        library_data = toml_data["library"]
        config.library = LibraryConfig(
            library_paths=[
                str(Path(p).expanduser())
                for p in library_data.get(
                    "library_paths", config.library.library_paths
                )
            ],
            supported_formats=[
                ext.lower()
                for ext in library_data.get(
                    "supported_formats", config.library.supported_formats
                )
            ],
            scan_recursive=library_data.get(
                "scan_recursive", config.library.scan_recursive
            ),
        )

    if "imports" in toml_data:
        imports_data = toml_data["imports"]
        config.imports = _validated(
            ImportConfig(
                max_file_size_mb=imports_data.get(
                    "max_file_size_mb", config.imports.max_file_size_mb
                ),
                generic_max_depth=imports_data.get(
                    "generic_max_depth", config.imports.generic_max_depth
                ),
                max_tracks=imports_data.get("max_tracks", config.imports.max_tracks),
            ),
            ImportConfig(),
        )

    if "lookup" in toml_data:
        lookup_data = toml_data["lookup"]
        config.lookup = _validated(
            LookupConfig(
                match_threshold=lookup_data.get(
                    "match_threshold", config.lookup.match_threshold
                ),
                search_limit=lookup_data.get(
                    "search_limit", config.lookup.search_limit
                ),
            ),
            LookupConfig(),
        )

    if "view" in toml_data:
        view_data = toml_data["view"]
        config.view = _validated(
            ViewConfig(
                primary_sort=view_data.get("primary_sort", config.view.primary_sort),
                primary_direction=view_data.get(
                    "primary_direction", config.view.primary_direction
                ),
                secondary_sort=view_data.get(
                    "secondary_sort", config.view.secondary_sort
                ),
                secondary_direction=view_data.get(
                    "secondary_direction", config.view.secondary_direction
                ),
                include_files_without_tempo=view_data.get(
                    "include_files_without_tempo",
                    config.view.include_files_without_tempo,
                ),
                search_threshold=view_data.get(
                    "search_threshold", config.view.search_threshold
                ),
            ),
            ViewConfig(),
        )

    if "spotify" in toml_data:
        spotify_data = toml_data["spotify"]
        config.spotify = SpotifyConfig(
            client_id=spotify_data.get("client_id", config.spotify.client_id),
            client_secret=spotify_data.get(
                "client_secret", config.spotify.client_secret
            ),
            redirect_uri=spotify_data.get(
                "redirect_uri", config.spotify.redirect_uri
            ),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level),
            log_file=logging_data.get("log_file"),
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get(
                "backup_count", config.logging.backup_count
            ),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    if "web" in toml_data:
        web_data = toml_data["web"]
        config.web = WebConfig(
            host=web_data.get("host", config.web.host),
            port=web_data.get("port", config.web.port),
            allowed_origins=web_data.get(
                "allowed_origins", config.web.allowed_origins
            ),
        )

    _apply_env_overrides(config)
    return config


def _apply_env_overrides(config: Config) -> None:
    """Override credentials and origins with environment variables if present."""
    spotify_client_id = os.environ.get("SPOTIFY_CLIENT_ID")
    spotify_client_secret = os.environ.get("SPOTIFY_CLIENT_SECRET")
    allowed_origins = os.environ.get("TRACK_CATALOG_ALLOWED_ORIGINS")

    if spotify_client_id:
        config.spotify.client_id = spotify_client_id
    if spotify_client_secret:
        config.spotify.client_secret = spotify_client_secret
    if allowed_origins:
        config.web.allowed_origins = [
            origin.strip() for origin in allowed_origins.split(",") if origin.strip()
        ]


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - SPOTIFY_CLIENT_ID
    - SPOTIFY_CLIENT_SECRET
    - TRACK_CATALOG_ALLOWED_ORIGINS (comma-separated)
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        config = Config()
        _apply_env_overrides(config)
        return config

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"Error loading configuration from {config_path}: {e}")
        print("Using default configuration.")
        config = Config()
        _apply_env_overrides(config)
        return config

    return parse_config(toml_data)


def ensure_directories() -> None:
    """Ensure config and data directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
