import fnmatch
import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "workdir": ".",  # root of the working copy the markers are written into
    "dry_run": False,
    "exclude": [],  # fnmatch patterns or directory names never annotated (e.g. "vendor/", "*.min.js")
    "max_workers": 4,  # files patched in parallel
}


def load_config(config_path: str = ".prconflict.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prconflict.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "exclude": list(DEFAULT_CONFIG["exclude"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a YAML mapping, got {type(file_config).__name__}.")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if isinstance(config["exclude"], str):
        config["exclude"] = [config["exclude"]]
    if int(config["max_workers"]) < 1:
        raise ValueError(f"max_workers must be at least 1, got {config['max_workers']}.")

    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config


def is_excluded(path: str, patterns: list[str]) -> bool:
    """Return True if ``path`` is covered by an ``exclude`` entry.

    An entry is tried as a glob against the whole repo-relative path, then
    against the file name alone, then as a directory: ``vendor``, ``vendor/``
    and ``third_party/js`` each cover every file below a directory of that
    name, at any depth.
    """
    parts = path.split("/")
    dirs = parts[:-1]
    for pattern in patterns:
        if fnmatch.fnmatch(path, pattern) or fnmatch.fnmatch(parts[-1], pattern):
            return True
        segments = [s for s in pattern.strip("/").split("/") if s]
        width = len(segments)
        if width and any(dirs[i : i + width] == segments for i in range(len(dirs) - width + 1)):
            return True
    return False
