"""Tests for the anonymous Disposable bag."""

from __future__ import annotations

import unittest
from unittest.mock import Mock

from side_effect_manager.disposable import Disposable


class DisposableTests(unittest.TestCase):
    """Validate add/push/remove/flush behavior."""

    def test_add_disposer_single_and_list(self) -> None:
        bag = Disposable()
        single = Mock()
        many = [Mock(), Mock()]
        bag.add_disposer(single)
        bag.push(many)
        self.assertEqual(len(bag), 3)
        self.assertIn(single, bag.disposers)

    def test_same_disposer_is_kept_once(self) -> None:
        bag = Disposable()
        disposer = Mock()
        bag.push(disposer)
        bag.push(disposer)
        self.assertEqual(len(bag), 1)

    def test_add_runs_executor_and_ignores_falsy(self) -> None:
        bag = Disposable()
        disposer = Mock()
        bag.add(lambda: disposer)
        bag.add(lambda: [Mock(), Mock()])
        bag.add(lambda: None)
        bag.add(lambda: False)
        self.assertEqual(len(bag), 3)

    def test_add_propagates_executor_failure(self) -> None:
        bag = Disposable()
        with self.assertRaises(ValueError):
            bag.add(Mock(side_effect=ValueError("setup failed")))
        self.assertEqual(len(bag), 0)

    def test_remove_does_not_run(self) -> None:
        bag = Disposable()
        disposer = Mock()
        bag.push(disposer)
        bag.remove(disposer)
        bag.remove(disposer)
        disposer.assert_not_called()
        self.assertEqual(len(bag), 0)

    def test_flush_runs_and_removes(self) -> None:
        bag = Disposable()
        disposer = Mock()
        bag.push(disposer)
        bag.flush(disposer)
        disposer.assert_called_once_with()
        self.assertEqual(len(bag), 0)

    def test_flush_all_runs_everything_and_reports_failures(self) -> None:
        errors: list[Exception] = []
        bag = Disposable(on_error=errors.append)
        error = RuntimeError("boom")
        healthy = [Mock() for _ in range(3)]
        bag.push([Mock(side_effect=error), *healthy])

        bag.flush_all()

        self.assertEqual(errors, [error])
        for disposer in healthy:
            disposer.assert_called_once_with()
        self.assertEqual(len(bag), 0)

    def test_default_error_handler_logs(self) -> None:
        bag = Disposable()
        bag.push(Mock(side_effect=ValueError("nope")))
        with self.assertLogs("side_effect_manager.disposable", level="ERROR") as logs:
            bag.flush_all()
        self.assertTrue(
            any("disposable.disposer.failed" in line for line in logs.output)
        )


if __name__ == "__main__":
    unittest.main()
