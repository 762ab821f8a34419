"""Tests for top-level package exports."""

from __future__ import annotations

import unittest

import side_effect_manager


class PackageExportTests(unittest.TestCase):
    """Ensure __getattr__ and exported symbols behave as expected."""

    def test_core_symbols_are_exported(self) -> None:
        self.assertIsNotNone(side_effect_manager.AsyncSideEffectManager)
        self.assertIsNotNone(side_effect_manager.SideEffectManager)
        self.assertIsNotNone(side_effect_manager.Disposable)
        self.assertIsNotNone(side_effect_manager.QuiescenceSignal)
        self.assertTrue(callable(side_effect_manager.gen_uid))
        self.assertTrue(callable(side_effect_manager.join_disposers))

    def test_lazy_exports_resolve_known_symbols(self) -> None:
        self.assertTrue(callable(side_effect_manager.load_config))
        self.assertTrue(callable(side_effect_manager.ensure_config_dir))
        self.assertTrue(callable(side_effect_manager.configure_logging))
        self.assertIsNotNone(side_effect_manager.EventBus)
        self.assertIsNotNone(side_effect_manager.Event)

    def test_all_names_resolve(self) -> None:
        for name in side_effect_manager.__all__:
            self.assertIsNotNone(getattr(side_effect_manager, name))

    def test_unknown_symbol_raises_attribute_error(self) -> None:
        with self.assertRaises(AttributeError):
            getattr(side_effect_manager, "THIS_DOES_NOT_EXIST")


if __name__ == "__main__":
    unittest.main()
