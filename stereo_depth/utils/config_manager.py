"""
Configuration Management System

Handles loading, validation, and management of pipeline parameters.
"""

import yaml
import copy
from typing import Dict, Any, Optional
from pathlib import Path


VALID_ALGORITHMS = ('bm', 'sgbm', 'hh', 'sgbm3way')
VALID_DEPTH_DTYPES = ('uint16', 'float32')


class ConfigManager:
    """Manages configuration parameters for the stereo depth pipeline."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, uses default config.
        """
        self.config_path = config_path or self._get_default_config_path()
        self.config = self._load_config()
        self._validate_config(self.config)

    def _get_default_config_path(self) -> str:
        """Get path to default configuration file."""
        package_dir = Path(__file__).parent.parent
        return str(package_dir / "config" / "default_config.yaml")

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        try:
            with open(self.config_path, 'r') as file:
                config = yaml.safe_load(file)
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing configuration file: {e}")

        return config or {}

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate configuration parameters for consistency and feasibility."""
        stereo = config.get('stereo', {})
        algorithm = stereo.get('algorithm', 'sgbm')
        if algorithm not in VALID_ALGORITHMS:
            raise ValueError(f"Unknown stereo algorithm '{algorithm}', expected one of {VALID_ALGORITHMS}")

        num_disparities = stereo.get('num_disparities')
        if num_disparities is not None and (num_disparities <= 0 or num_disparities % 16 != 0):
            raise ValueError("num_disparities must be a positive multiple of 16")

        scale = float(stereo.get('scale', 1.0))
        if scale <= 0:
            raise ValueError("scale must be a positive number")

        # Validate block sizes of both matchers
        for section in ('bm', 'sgbm'):
            block_size = config.get(section, {}).get('block_size')
            if block_size is not None and (block_size < 5 or block_size % 2 != 1):
                raise ValueError(f"{section}.block_size must be an odd number >= 5")

        lrc = config.get('lrc', {})
        if float(lrc.get('threshold', 1.0)) < 0:
            raise ValueError("lrc.threshold must be non-negative")

        depth = config.get('depth', {})
        if depth.get('output_dtype', 'uint16') not in VALID_DEPTH_DTYPES:
            raise ValueError(f"depth.output_dtype must be one of {VALID_DEPTH_DTYPES}")

        pc = config.get('point_cloud', {})
        if float(pc.get('max_depth', 1.0e4)) <= 0:
            raise ValueError("point_cloud.max_depth must be positive")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'sgbm.block_size')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'sgbm.block_size')
            value: Value to set

        Raises:
            ValueError: If the updated configuration is invalid; the current
                configuration is left unchanged
        """
        keys = key.split('.')
        candidate = copy.deepcopy(self.config)
        config_ref = candidate

        for k in keys[:-1]:
            if k not in config_ref:
                config_ref[k] = {}
            config_ref = config_ref[k]

        config_ref[keys[-1]] = value
        self._validate_config(candidate)
        self.config = candidate

    def save(self, output_path: Optional[str] = None) -> None:
        """
        Save current configuration to file.

        Args:
            output_path: Path to save configuration. If None, overwrites current file.
        """
        save_path = output_path or self.config_path

        with open(save_path, 'w') as file:
            yaml.dump(self.config, file, default_flow_style=False, indent=2)

    def _section(self, name: str) -> Dict[str, Any]:
        return copy.deepcopy(self.config.get(name) or {})

    def get_stereo_params(self) -> Dict[str, Any]:
        """Get algorithm selection and search range as a dictionary."""
        return self._section('stereo')

    def get_rectification_params(self) -> Dict[str, Any]:
        """Get rectification parameters as a dictionary."""
        return self._section('rectification')

    def get_bm_params(self) -> Dict[str, Any]:
        """Get block matching parameters as a dictionary."""
        return self._section('bm')

    def get_sgbm_params(self) -> Dict[str, Any]:
        """Get SGBM parameters as a dictionary."""
        return self._section('sgbm')

    def get_lrc_params(self) -> Dict[str, Any]:
        """Get Left-Right Consistency parameters as a dictionary."""
        return self._section('lrc')

    def get_depth_params(self) -> Dict[str, Any]:
        """Get depth conversion parameters as a dictionary."""
        return self._section('depth')

    def get_point_cloud_params(self) -> Dict[str, Any]:
        """Get point cloud reprojection parameters as a dictionary."""
        return self._section('point_cloud')

    def get_parallel_params(self) -> Dict[str, Any]:
        """Get worker thread settings as a dictionary."""
        return self._section('parallel')
