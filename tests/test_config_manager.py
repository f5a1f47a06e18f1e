"""
Tests for ConfigManager viewer settings.

Covers defaults, clamping, persistence and recovery from a corrupt file.
Uses a temporary config directory so the user config is never touched.
"""

import json
import os
import shutil
import sys
import tempfile
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from utils.config_manager import ConfigManager


TEST_CONFIG_FILENAME = "viewport_core_config_test.json"


class TestConfigManager(unittest.TestCase):
    """Tests for ConfigManager getters/setters."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config = ConfigManager(config_filename=TEST_CONFIG_FILENAME, config_dir=self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_defaults(self):
        self.assertEqual(self.config.get_multi_window_layout(), "1x1")
        self.assertEqual(self.config.get_cine_default_frame_rate(), 10.0)
        self.assertEqual(self.config.get_cine_frame_rate_range(), (1.0, 30.0))
        self.assertEqual(self.config.get_default_tool(), "pan")
        self.assertEqual(self.config.get_zoom_factors(), (1.2, 0.8))
        self.assertEqual(self.config.get_reset_window_level(), (400.0, 40.0))
        self.assertEqual(self.config.get_notice_history_size(), 50)

    def test_clamp_frame_rate(self):
        self.assertEqual(self.config.clamp_frame_rate(0.1), 1.0)
        self.assertEqual(self.config.clamp_frame_rate(15), 15.0)
        self.assertEqual(self.config.clamp_frame_rate(120), 30.0)

    def test_set_default_frame_rate_is_clamped(self):
        self.config.set_cine_default_frame_rate(99)
        self.assertEqual(self.config.get_cine_default_frame_rate(), 30.0)

    def test_settings_persist(self):
        self.config.set_multi_window_layout("2x2")
        self.config.set_default_tool("length")
        self.config.set_reset_window_level(1500, -600)

        reloaded = ConfigManager(config_filename=TEST_CONFIG_FILENAME, config_dir=self.temp_dir)
        self.assertEqual(reloaded.get_multi_window_layout(), "2x2")
        self.assertEqual(reloaded.get_default_tool(), "length")
        self.assertEqual(reloaded.get_reset_window_level(), (1500.0, -600.0))

    def test_corrupt_file_falls_back_to_defaults(self):
        with open(self.config.config_path, "w", encoding="utf-8") as f:
            f.write("{not json")
        reloaded = ConfigManager(config_filename=TEST_CONFIG_FILENAME, config_dir=self.temp_dir)
        self.assertEqual(reloaded.get_multi_window_layout(), "1x1")

    def test_partial_file_is_merged_with_defaults(self):
        with open(self.config.config_path, "w", encoding="utf-8") as f:
            json.dump({"zoom_in_factor": 1.5}, f)
        reloaded = ConfigManager(config_filename=TEST_CONFIG_FILENAME, config_dir=self.temp_dir)
        self.assertEqual(reloaded.get_zoom_factors(), (1.5, 0.8))
        self.assertEqual(reloaded.get_default_tool(), "pan")

    def test_invalid_values_use_defaults(self):
        self.config.set("zoom_out_factor", -1)
        self.config.set("cine_min_frame_rate", 50)
        self.config.set("notice_history_size", "many")
        self.assertEqual(self.config.get_zoom_factors(), (1.2, 0.8))
        self.assertEqual(self.config.get_cine_frame_rate_range(), (1.0, 30.0))
        self.assertEqual(self.config.get_notice_history_size(), 50)


if __name__ == "__main__":
    unittest.main()
