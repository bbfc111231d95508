import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from doorman.actions import Action
from doorman.config import DEFAULT_CONFIG_PATH, get_bool_env, load_settings, parse_settings


class ParseSettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch.dict(os.environ, {}, clear=False)
        patcher.start()
        self.addCleanup(patcher.stop)
        os.environ.pop("DOORMAN_VERBOSE", None)
        os.environ.pop("DOORMAN_DEBUG_MODE", None)

    def test_minimal_config_uses_defaults(self) -> None:
        settings = parse_settings({"window_title_regex": "^Oculus$"})
        self.assertEqual(settings.buttons, {})
        self.assertIsNone(settings.document_name)
        policy = settings.policy()
        self.assertEqual(policy.base_delay, 0.25)
        self.assertEqual(policy.max_delay, 1.0)
        self.assertIsNone(policy.miss_threshold)
        self.assertFalse(settings.registry().allow_seed_override)

    def test_buttons_and_cooldown(self) -> None:
        settings = parse_settings(
            {
                "window_title_regex": "Oculus",
                "document_name": "Oculus",
                "buttons": {"Continue": "click", "Continue with Oculus": "scroll_click"},
                "cooldown": {
                    "base_seconds": 0.1,
                    "max_seconds": 5,
                    "miss_threshold": 25,
                    "terminal_button": "Finish",
                    "terminal_seconds": 60,
                },
            }
        )
        registry = settings.registry()
        self.assertIs(registry.resolve("CONTINUE"), Action.CLICK)
        self.assertIs(registry.resolve("continue with oculus"), Action.SCROLL_THEN_CLICK)
        policy = settings.policy()
        self.assertEqual(policy.miss_threshold, 25)
        self.assertEqual(policy.max_delay, 5.0)
        self.assertTrue(policy.is_terminal("finish"))

    def test_missing_window_regex_is_fatal(self) -> None:
        with self.assertRaises(SystemExit):
            parse_settings({"buttons": {"Continue": "click"}})

    def test_invalid_regex_is_fatal(self) -> None:
        with self.assertRaises(SystemExit):
            parse_settings({"window_title_regex": "(unclosed"})

    def test_bad_action_is_fatal(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            parse_settings({"window_title_regex": "x", "buttons": {"Continue": "double"}})
        self.assertIn("Continue", str(ctx.exception))

    def test_bad_cooldown_is_fatal(self) -> None:
        with self.assertRaises(SystemExit):
            parse_settings({"window_title_regex": "x", "cooldown": {"base_seconds": 2, "max_seconds": 1}})
        with self.assertRaises(SystemExit):
            parse_settings({"window_title_regex": "x", "cooldown": {"base_seconds": "fast"}})

    def test_unknown_keys_warn(self) -> None:
        with self.assertLogs("doorman.config", level="WARNING") as logs:
            parse_settings({"window_title_regex": "x", "intervall": 2, "cooldown": {"max": 1}})
        joined = "\n".join(logs.output)
        self.assertIn("'intervall'", joined)
        self.assertIn("'cooldown.max'", joined)
        self.assertIn("[CONFIG]", joined)
        self.assertNotIn("[WARN]", joined)

    def test_env_overrides(self) -> None:
        os.environ["DOORMAN_VERBOSE"] = "yes"
        os.environ["DOORMAN_DEBUG_MODE"] = "0"
        settings = parse_settings({"window_title_regex": "x", "debug_mode": True})
        self.assertTrue(settings.verbose)
        self.assertFalse(settings.debug_mode)

    def test_get_bool_env_ignores_garbage(self) -> None:
        os.environ["DOORMAN_VERBOSE"] = "maybe"
        self.assertIsNone(get_bool_env("DOORMAN_VERBOSE"))


class LoadSettingsTests(unittest.TestCase):
    def test_load_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(
                'window_title_regex: "^App$"\nbuttons:\n  Next: click\n', encoding="utf-8"
            )
            settings = load_settings(path)
        self.assertEqual(settings.window_title_regex, "^App$")
        self.assertIs(settings.buttons["Next"], Action.CLICK)
        self.assertEqual(settings.path, path.resolve())

    def test_unquoted_yes_no_button_names_are_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(
                'window_title_regex: "^App$"\nbuttons:\n  Yes: click\n  No: ignore\n',
                encoding="utf-8",
            )
            with self.assertRaises(SystemExit) as ctx:
                load_settings(path)
        self.assertIn("quote the button name", str(ctx.exception))

    def test_quoted_yes_button_name_is_kept(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(
                'window_title_regex: "^App$"\nbuttons:\n  "Yes": click\n', encoding="utf-8"
            )
            settings = load_settings(path)
        self.assertIs(settings.registry().resolve("yes"), Action.CLICK)

    def test_missing_file(self) -> None:
        with self.assertRaises(SystemExit):
            load_settings(Path(tempfile.gettempdir()) / "doorman-missing.yaml")

    def test_shipped_config_parses(self) -> None:
        settings = load_settings(DEFAULT_CONFIG_PATH)
        self.assertIs(settings.buttons["Continue with Oculus"], Action.SCROLL_THEN_CLICK)
        self.assertIsNone(settings.terminal_button)


if __name__ == "__main__":
    unittest.main()
