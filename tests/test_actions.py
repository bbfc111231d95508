import unittest

from doorman.actions import (
    SEED_IGNORED_NAMES,
    Action,
    ActionRegistry,
    EntryState,
    normalize_name,
)


class ActionParseTests(unittest.TestCase):
    def test_parse_accepts_config_spellings(self) -> None:
        self.assertIs(Action.parse("Click"), Action.CLICK)
        self.assertIs(Action.parse("IGNORE"), Action.IGNORE)
        self.assertIs(Action.parse("scroll_click"), Action.SCROLL_THEN_CLICK)
        self.assertIs(Action.parse("ScrollClick"), Action.SCROLL_THEN_CLICK)
        self.assertIs(Action.parse("scroll-then-click"), Action.SCROLL_THEN_CLICK)
        self.assertIs(Action.parse(Action.CLICK), Action.CLICK)

    def test_parse_rejects_unknown(self) -> None:
        with self.assertRaises(ValueError):
            Action.parse("double click")

    def test_normalize_name_collapses_case_and_whitespace(self) -> None:
        self.assertEqual(normalize_name("  Continue   with\tOculus "), "continue with oculus")


class ActionRegistryTests(unittest.TestCase):
    def test_seeds_always_ignore(self) -> None:
        registry = ActionRegistry({name: Action.CLICK for name in SEED_IGNORED_NAMES})
        for name in SEED_IGNORED_NAMES:
            self.assertIs(registry.resolve(name), Action.IGNORE)
            self.assertIs(registry.resolve(name.upper()), Action.IGNORE)
            self.assertFalse(registry.remember(name.lower(), Action.CLICK))
            self.assertFalse(registry.remember(name, Action.SCROLL_THEN_CLICK))
            self.assertIs(registry.resolve(name), Action.IGNORE)
            self.assertTrue(registry.seeded(name))

    def test_configured_seed_conflict_warns_with_ignore_tag(self) -> None:
        with self.assertLogs("doorman.actions", level="WARNING") as logs:
            ActionRegistry({"Close": Action.CLICK})
        self.assertTrue(logs.output[0].endswith(
            "[IGNORE] Configured action 'click' for 'Close' ignored: "
            "built-in ignored button (set allow_seed_override to change it)."
        ))

    def test_seed_accepts_explicit_ignore(self) -> None:
        registry = ActionRegistry()
        self.assertTrue(registry.remember("close", Action.IGNORE))
        self.assertIs(registry.state("Close"), EntryState.SEEDED)

    def test_case_insensitive_lookup(self) -> None:
        registry = ActionRegistry()
        registry.remember("Continue", Action.CLICK)
        self.assertIs(registry.resolve("CONTINUE"), Action.CLICK)
        self.assertIs(registry.resolve("continue"), Action.CLICK)
        self.assertIn("cOnTiNuE", registry)

    def test_unknown_name_resolves_to_none(self) -> None:
        self.assertIsNone(ActionRegistry().resolve("Foo"))

    def test_initial_mapping_accepts_strings(self) -> None:
        registry = ActionRegistry({"Confirm": "click", "Continue with Oculus": "scroll_click"})
        self.assertIs(registry.resolve("confirm"), Action.CLICK)
        self.assertIs(registry.resolve("continue with oculus"), Action.SCROLL_THEN_CLICK)
        self.assertIs(registry.state("Confirm"), EntryState.CONFIGURED)

    def test_remember_overwrites_configured_entries(self) -> None:
        registry = ActionRegistry({"Continue": Action.CLICK})
        self.assertTrue(registry.remember("continue", Action.IGNORE))
        self.assertIs(registry.resolve("Continue"), Action.IGNORE)

    def test_learn_ignore_only_from_unset(self) -> None:
        registry = ActionRegistry({"Continue": Action.CLICK})
        self.assertTrue(registry.learn_ignore("Mystery"))
        self.assertFalse(registry.learn_ignore("MYSTERY"))
        self.assertFalse(registry.learn_ignore("Continue"))
        self.assertIs(registry.resolve("Continue"), Action.CLICK)
        self.assertIs(registry.resolve("mystery"), Action.IGNORE)
        self.assertEqual(registry.learned(), ["Mystery"])

    def test_seed_override_lets_configuration_win(self) -> None:
        registry = ActionRegistry({"Cancel": Action.CLICK}, allow_seed_override=True)
        self.assertIs(registry.resolve("cancel"), Action.CLICK)
        self.assertIs(registry.resolve("Close"), Action.IGNORE)
        self.assertFalse(registry.seeded("Close"))
        self.assertTrue(registry.remember("Close", Action.CLICK))
        self.assertIs(registry.resolve("close"), Action.CLICK)

    def test_len_counts_seeds(self) -> None:
        registry = ActionRegistry({"Continue": "click"})
        self.assertEqual(len(registry), len(SEED_IGNORED_NAMES) + 1)


if __name__ == "__main__":
    unittest.main()
