"""Configuration loader for inheritance cycle analysis settings."""

import json
import os
from pathlib import Path
from typing import Dict, List, Any, Optional, Tuple

# Handle both package and script imports
try:
    from . import diagnostics
except ImportError:
    import diagnostics


class AnalyzerConfig:
    """Loads and manages configuration for the cycle analyzer."""

    CONFIG_FILENAME = ".inheritance-cycles-config.json"

    DEFAULT_CONFIG = {
        "exclude_directories": [
            ".git",
            ".svn",
            ".hg",
            "node_modules",
            "__pycache__",
            ".pytest_cache",
            ".vs",
            ".vscode",
            ".idea",
            "CMakeFiles",
            "build",
        ],
        "source_extensions": [".cpp", ".cc", ".cxx", ".c++", ".h", ".hpp", ".hxx", ".h++"],
        "clang_args": ["-std=c++17"],
        "include_structs": True,
        "max_file_size_mb": 10,
        "relationships_file": None,  # JSON snapshot used instead of parsing sources
        "max_workers": None,  # Defaults to the CPU count
        "parallel_threshold": 2048,
        "analysis_timeout_seconds": 300,
        "path_separator": " -> ",
        "diagnostics": {"level": "info", "enabled": True},  # debug, info, warning, error, fatal
    }

    def __init__(self, project_root: Path, config_file: Optional[Path] = None):
        self.project_root = Path(project_root)
        self.explicit_config_file = Path(config_file) if config_file else None
        self.config_path = None  # Will be set by _load_config
        self.config = self._load_config()

    def _find_config_file(self) -> Tuple[Optional[Path], Optional[str]]:
        """Find config file by checking multiple locations in priority order.

        Priority order:
        1. Explicit config file passed by the caller
        2. Environment variable INHERITANCE_CYCLES_CONFIG
        3. Project root (.inheritance-cycles-config.json)

        Returns tuple of (config_path, source_description) or (None, None) if not found.
        """
        if self.explicit_config_file:
            if self.explicit_config_file.exists():
                return (self.explicit_config_file, "explicit config file")
            diagnostics.warning(f"Config file does not exist: {self.explicit_config_file}")

        env_config = os.environ.get("INHERITANCE_CYCLES_CONFIG")
        if env_config:
            env_path = Path(env_config)
            if env_path.exists():
                diagnostics.debug(f"Using config from INHERITANCE_CYCLES_CONFIG: {env_path}")
                return (env_path, "environment variable INHERITANCE_CYCLES_CONFIG")
            else:
                diagnostics.warning(
                    f"INHERITANCE_CYCLES_CONFIG points to non-existent file: {env_path}"
                )

        project_config = self.project_root / self.CONFIG_FILENAME
        if project_config.exists():
            diagnostics.debug(f"Using config from project root: {project_config}")
            return (project_config, "project root directory")

        diagnostics.debug(
            f"No config file found. Checked: {project_config}, env var: {'set' if env_config else 'not set'}"
        )
        return (None, None)

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file or use defaults."""
        config_file, config_source = self._find_config_file()

        config = json.loads(json.dumps(self.DEFAULT_CONFIG))  # deep copy

        if config_file:
            self.config_path = config_file
            try:
                with open(config_file, "r") as f:
                    user_config = json.load(f)

                if not isinstance(user_config, dict):
                    diagnostics.error(f"Invalid config file format at {config_file}")
                    diagnostics.error(
                        f"Expected a JSON object (dict), but got {type(user_config).__name__}"
                    )
                    diagnostics.warning("Using default configuration")
                    return config

                # User config takes precedence
                config.update(user_config)
                # Only an explicit diagnostics block overrides the environment level
                if "diagnostics" in user_config:
                    diagnostics.configure_from_config(user_config)

                diagnostics.debug(f"Configuration loaded from {config_source}: {config_file}")
                return config
            except (OSError, json.JSONDecodeError) as e:
                diagnostics.error(f"Error loading config from {config_file}: {e}")
                diagnostics.warning("Using default configuration")
        else:
            diagnostics.debug("No config file found, using defaults")

        return config

    def get_exclude_directories(self) -> List[str]:
        """Get list of directories to exclude."""
        return self.config.get("exclude_directories", self.DEFAULT_CONFIG["exclude_directories"])

    def get_source_extensions(self) -> List[str]:
        extensions = self.config.get("source_extensions", self.DEFAULT_CONFIG["source_extensions"])
        return [ext.lower() for ext in extensions]

    def get_clang_args(self) -> List[str]:
        return list(self.config.get("clang_args", self.DEFAULT_CONFIG["clang_args"]))

    def get_include_structs(self) -> bool:
        """Whether struct definitions count as classes."""
        return bool(self.config.get("include_structs", True))

    def get_max_file_size_mb(self) -> float:
        return self.config.get("max_file_size_mb", self.DEFAULT_CONFIG["max_file_size_mb"])

    def get_relationships_file(self) -> Optional[Path]:
        """Path of the relationship snapshot, resolved against the project root."""
        value = self.config.get("relationships_file")
        if not value:
            return None
        path = Path(value)
        if not path.is_absolute():
            path = self.project_root / path
        return path

    def get_max_workers(self) -> int:
        value = self.config.get("max_workers")
        if value is None:
            return os.cpu_count() or 1
        return max(1, int(value))

    def get_parallel_threshold(self) -> int:
        return int(self.config.get("parallel_threshold", self.DEFAULT_CONFIG["parallel_threshold"]))

    def get_analysis_timeout(self) -> Optional[float]:
        """Wall-clock budget for chain building; None or 0 disables it."""
        value = self.config.get("analysis_timeout_seconds")
        if not value:
            return None
        return float(value)

    def get_path_separator(self) -> str:
        return self.config.get("path_separator", self.DEFAULT_CONFIG["path_separator"])

    def create_example_config(self) -> Path:
        """Create an example configuration file in the project root.

        Returns:
            Path to the created config file
        """
        example_config = {
            "_comment": "Inheritance cycle analyzer configuration file",
            "exclude_directories": [".git", "build", "third_party", "external"],
            "source_extensions": [".cpp", ".h", ".hpp"],
            "clang_args": ["-std=c++17", "-Iinclude"],
            "include_structs": True,
            "max_file_size_mb": 10,
            "relationships_file": None,
            "_relationships_file_help": (
                "Path to a JSON snapshot {\"classes\": {\"A\": \"B\", \"B\": null}} "
                "read instead of parsing sources"
            ),
            "max_workers": None,
            "parallel_threshold": 2048,
            "analysis_timeout_seconds": 300,
            "path_separator": " -> ",
            "diagnostics": {"level": "info", "enabled": True},
        }

        target_path = self.project_root / self.CONFIG_FILENAME
        with open(target_path, "w") as f:
            json.dump(example_config, f, indent=2)

        diagnostics.info(f"Created example config at: {target_path}")
        return target_path
