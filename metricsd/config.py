"""
Configuration management for metricsd.

Supports:
- TOML config files
- Environment variables
- Command-line overrides
- Sensible defaults

Priority (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Config file
4. Defaults
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


# Default config file locations (searched in order)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / "metricsd.toml",
    Path.home() / ".config" / "metricsd" / "config.toml",
    Path("/etc/metricsd/config.toml"),
]

ENV_STORAGE_DIR = "METRICSD_STORAGE_DIR"
ENV_LOG_LEVEL = "METRICSD_LOG_LEVEL"
ENV_TESTING = "METRICSD_TESTING"


@dataclass
class StorageConfig:
    """Where persistent counters live."""
    dir: str = "/var/lib/metricsd"


@dataclass
class PathsConfig:
    """Sources the daemon reads."""
    meminfo: str = "/proc/meminfo"
    proc_stat: str = "/proc/stat"
    scaling_max_freq: str = "/sys/devices/system/cpu/cpu0/cpufreq/scaling_max_freq"
    cpuinfo_max_freq: str = "/sys/devices/system/cpu/cpu0/cpufreq/cpuinfo_max_freq"
    zram_dir: str = "/sys/block/zram0"
    kernel_crash_marker: str = "/var/run/kernel-crash-detected"
    unclean_shutdown_marker: str = "/var/run/unclean-shutdown-detected"
    os_release: str = "/etc/os-release"
    version_key: str = "VERSION_ID"


@dataclass
class IntervalsConfig:
    """Scheduling periods."""
    update_stats_ms: int = 300000
    meminfo_s: int = 30
    cpu_throttle_s: int = 300
    zram_s: int = 300


@dataclass
class LoggingConfig:
    """Log output configuration."""
    level: str = "INFO"


@dataclass
class Config:
    """Main configuration container."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    intervals: IntervalsConfig = field(default_factory=IntervalsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    testing: bool = False

    # Source tracking
    _config_file: Optional[Path] = None

    @classmethod
    def load(cls, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> "Config":
        """
        Load configuration from file and environment.

        Args:
            config_path: Explicit path to config file. If None, searches default locations.
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Config instance with loaded values
        """
        config = cls()

        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            path = cls._find_config_file()

        if path:
            config = cls._load_from_file(path)
            config._config_file = path

        config.apply_environment(os.environ if environ is None else environ)
        return config

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        """Find config file in default locations."""
        for path in CONFIG_SEARCH_PATHS:
            if path.exists():
                return path
        return None

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load config from TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        if "storage" in data:
            storage = data["storage"]
            config.storage = StorageConfig(
                dir=str(storage.get("dir", config.storage.dir)),
            )

        if "paths" in data:
            paths = data["paths"]
            defaults = config.paths
            config.paths = PathsConfig(
                meminfo=paths.get("meminfo", defaults.meminfo),
                proc_stat=paths.get("proc_stat", defaults.proc_stat),
                scaling_max_freq=paths.get("scaling_max_freq", defaults.scaling_max_freq),
                cpuinfo_max_freq=paths.get("cpuinfo_max_freq", defaults.cpuinfo_max_freq),
                zram_dir=paths.get("zram_dir", defaults.zram_dir),
                kernel_crash_marker=paths.get("kernel_crash_marker", defaults.kernel_crash_marker),
                unclean_shutdown_marker=paths.get("unclean_shutdown_marker", defaults.unclean_shutdown_marker),
                os_release=paths.get("os_release", defaults.os_release),
                version_key=paths.get("version_key", defaults.version_key),
            )

        if "intervals" in data:
            intervals = data["intervals"]
            defaults = config.intervals
            config.intervals = IntervalsConfig(
                update_stats_ms=intervals.get("update_stats_ms", defaults.update_stats_ms),
                meminfo_s=intervals.get("meminfo_s", defaults.meminfo_s),
                cpu_throttle_s=intervals.get("cpu_throttle_s", defaults.cpu_throttle_s),
                zram_s=intervals.get("zram_s", defaults.zram_s),
            )

        if "logging" in data:
            config.logging = LoggingConfig(
                level=str(data["logging"].get("level", config.logging.level)).upper(),
            )

        config.testing = bool(data.get("testing", config.testing))

        return config

    def apply_environment(self, environ: Dict[str, str]) -> "Config":
        """Override values from METRICSD_* environment variables."""
        if environ.get(ENV_STORAGE_DIR):
            self.storage.dir = environ[ENV_STORAGE_DIR]
        if environ.get(ENV_LOG_LEVEL):
            self.logging.level = environ[ENV_LOG_LEVEL].upper()
        if environ.get(ENV_TESTING, "").lower() in ("1", "true", "yes"):
            self.testing = True
        return self

    def override_from_args(self, args) -> "Config":
        """
        Override config values from argparse namespace.

        Args with value None are ignored (keeping config file values).
        """
        if getattr(args, "storage_dir", None):
            self.storage.dir = args.storage_dir
        if getattr(args, "log_level", None):
            self.logging.level = args.log_level.upper()
        if getattr(args, "testing", None):
            self.testing = True
        if getattr(args, "meminfo", None):
            self.paths.meminfo = args.meminfo
        if getattr(args, "zram_dir", None):
            self.paths.zram_dir = args.zram_dir

        return self

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.storage.dir:
            errors.append("Storage directory is required")

        if self.intervals.update_stats_ms <= 0:
            errors.append("update_stats_ms must be positive")
        for name in ("meminfo_s", "cpu_throttle_s", "zram_s"):
            if getattr(self.intervals, name) <= 0:
                errors.append(f"{name} must be positive")

        if self.logging.level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Unknown log level: {self.logging.level}")

        return errors

    def summary(self, include_config_path: bool = True) -> str:
        """Generate human-readable config summary."""
        lines = []

        if include_config_path:
            if self._config_file:
                lines.append(f"Config: {self._config_file}")
            else:
                lines.append("Config: (defaults)")

        lines.append(f"Storage: {self.storage.dir}")
        lines.append(
            f"Intervals: stats {self.intervals.update_stats_ms}ms, meminfo {self.intervals.meminfo_s}s, "
            f"cpu throttle {self.intervals.cpu_throttle_s}s, zram {self.intervals.zram_s}s"
        )
        lines.append(f"Log level: {self.logging.level}")
        if self.testing:
            lines.append("Testing mode: on")

        return "\n".join(lines)


def create_example_config(path: str = "metricsd.toml") -> Path:
    """Create example config file."""
    target = Path(path)

    if target.exists():
        raise FileExistsError(f"Config file already exists: {path}")

    target.write_text("""# metricsd Configuration

[storage]
dir = "/var/lib/metricsd"

[paths]
meminfo = "/proc/meminfo"
zram_dir = "/sys/block/zram0"
os_release = "/etc/os-release"

[intervals]
update_stats_ms = 300000
meminfo_s = 30
cpu_throttle_s = 300
zram_s = 300

[logging]
level = "INFO"
""")

    return target
