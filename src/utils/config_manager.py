"""
Configuration Manager

This module handles persistent storage and retrieval of viewer preferences
(default layout, cine frame rate range, default tool, zoom steps, reset
window/level). Settings are stored in a JSON file in the user's application
data directory.

Inputs:
    - User preferences

Outputs:
    - Loaded configuration values
    - Saved configuration file

Requirements:
    - json module (standard library)
    - pathlib module (standard library)
    - os module (standard library)
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union


class ConfigManager:
    """
    Manages viewer configuration and user preferences.

    Handles loading and saving of settings including:
    - Multi-window layout
    - Cine default frame rate and allowed range
    - Default interactive tool
    - Zoom in/out step factors
    - Window width/center applied by reset view
    """

    def __init__(
        self,
        config_filename: str = "viewport_core_config.json",
        config_dir: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the configuration manager.

        Args:
            config_filename: Name of the configuration file to use
            config_dir: Optional directory override (defaults to the per-user config dir)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif os.name == 'nt':  # Windows
            app_data = os.getenv('APPDATA', os.path.expanduser('~'))
            self.config_dir = Path(app_data) / "ViewportCore"
        else:  # Mac/Linux
            self.config_dir = Path.home() / ".config" / "ViewportCore"

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path = self.config_dir / config_filename

        # Default configuration values
        self.default_config = {
            "multi_window_layout": "1x1",  # "RxC", e.g. "1x1", "1x2", "2x1", "2x2"
            "cine_default_frame_rate": 10.0,  # FPS
            "cine_min_frame_rate": 1.0,
            "cine_max_frame_rate": 30.0,
            "default_tool": "pan",
            "zoom_in_factor": 1.2,
            "zoom_out_factor": 0.8,
            "reset_window_width": 400.0,
            "reset_window_center": 40.0,
            "notice_history_size": 50,
        }

        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from file, or return defaults if file doesn't exist.

        Returns:
            Dictionary containing configuration values
        """
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    loaded_config = json.load(f)
                if not isinstance(loaded_config, dict):
                    raise ValueError("top-level JSON value is not an object")
                # Merge with defaults to ensure all keys exist
                config = self.default_config.copy()
                config.update(loaded_config)
                return config
            except (json.JSONDecodeError, ValueError, IOError) as e:
                print(f"Warning: Could not load config file: {e}")
                return self.default_config.copy()
        return self.default_config.copy()

    def save_config(self) -> bool:
        """
        Save current configuration to file.

        Returns:
            True if save was successful, False otherwise
        """
        try:
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=4, ensure_ascii=False)
            return True
        except IOError as e:
            print(f"Error saving config file: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key to retrieve
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (not persisted until save_config()).

        Args:
            key: Configuration key to set
            value: Value to set
        """
        self.config[key] = value

    def _get_float(self, key: str) -> float:
        try:
            return float(self.config.get(key, self.default_config[key]))
        except (TypeError, ValueError):
            return float(self.default_config[key])

    def get_multi_window_layout(self) -> str:
        """
        Get the multi-window layout mode.

        Returns:
            Layout string such as "1x1" or "2x2"
        """
        return str(self.config.get("multi_window_layout", "1x1"))

    def set_multi_window_layout(self, layout_mode: str) -> None:
        """
        Set the multi-window layout mode.

        Args:
            layout_mode: Layout string such as "1x2"
        """
        self.config["multi_window_layout"] = layout_mode
        self.save_config()

    def get_cine_frame_rate_range(self) -> Tuple[float, float]:
        """
        Get the allowed cine frame rate range.

        Returns:
            Tuple of (min_fps, max_fps)
        """
        low = self._get_float("cine_min_frame_rate")
        high = self._get_float("cine_max_frame_rate")
        if low <= 0 or high < low:
            return (float(self.default_config["cine_min_frame_rate"]),
                    float(self.default_config["cine_max_frame_rate"]))
        return (low, high)

    def clamp_frame_rate(self, frame_rate: float) -> float:
        """Clamp a frame rate into the configured range."""
        low, high = self.get_cine_frame_rate_range()
        return max(low, min(high, float(frame_rate)))

    def get_cine_default_frame_rate(self) -> float:
        """Get the default cine frame rate, clamped to the configured range."""
        return self.clamp_frame_rate(self._get_float("cine_default_frame_rate"))

    def set_cine_default_frame_rate(self, frame_rate: float) -> None:
        """
        Set the default cine frame rate.

        Args:
            frame_rate: Frames per second; clamped to the configured range
        """
        self.config["cine_default_frame_rate"] = self.clamp_frame_rate(frame_rate)
        self.save_config()

    def get_default_tool(self) -> str:
        return str(self.config.get("default_tool", "pan"))

    def set_default_tool(self, tool: str) -> None:
        self.config["default_tool"] = tool
        self.save_config()

    def get_zoom_factors(self) -> Tuple[float, float]:
        """
        Get zoom step factors.

        Returns:
            Tuple of (zoom_in_factor, zoom_out_factor)
        """
        zoom_in = self._get_float("zoom_in_factor")
        zoom_out = self._get_float("zoom_out_factor")
        if zoom_in <= 0:
            zoom_in = float(self.default_config["zoom_in_factor"])
        if zoom_out <= 0:
            zoom_out = float(self.default_config["zoom_out_factor"])
        return (zoom_in, zoom_out)

    def get_reset_window_level(self) -> Tuple[float, float]:
        """
        Get the window/level applied by reset view.

        Returns:
            Tuple of (window_width, window_center)
        """
        width = max(1.0, self._get_float("reset_window_width"))
        return (width, self._get_float("reset_window_center"))

    def set_reset_window_level(self, window_width: float, window_center: float) -> None:
        self.config["reset_window_width"] = max(1.0, float(window_width))
        self.config["reset_window_center"] = float(window_center)
        self.save_config()

    def get_notice_history_size(self) -> int:
        try:
            return max(1, int(self.config.get("notice_history_size", 50)))
        except (TypeError, ValueError):
            return 50
