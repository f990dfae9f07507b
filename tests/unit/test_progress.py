from __future__ import annotations

from unittest.mock import patch

from bmecat_builder.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    """Test that is_tty_enabled returns sys.stdout.isatty()."""
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True

    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:
    """Test cases for ProgressTracker class."""

    def test_init_with_tty_enabled(self):
        with patch('bmecat_builder.services.progress.is_tty_enabled', return_value=True), \
             patch('bmecat_builder.services.progress.tqdm') as mock_tqdm:

            tracker = ProgressTracker(5, description="Test rows")

            assert tracker.total == 5
            assert tracker.description == "Test rows"
            assert tracker.done == 0
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=5,
                desc="Test rows",
                unit="row",
                disable=False,
                leave=False,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch('bmecat_builder.services.progress.is_tty_enabled', return_value=False), \
             patch('bmecat_builder.services.progress.tqdm') as mock_tqdm:

            tracker = ProgressTracker(3)

            assert tracker.enabled is False
            assert tracker.pbar is None
            mock_tqdm.assert_not_called()

    def test_zero_total_disables_bar(self):
        with patch('bmecat_builder.services.progress.is_tty_enabled', return_value=True), \
             patch('bmecat_builder.services.progress.tqdm') as mock_tqdm:

            tracker = ProgressTracker(0)

            assert tracker.enabled is False
            mock_tqdm.assert_not_called()

    def test_advance_updates_bar(self):
        with patch('bmecat_builder.services.progress.is_tty_enabled', return_value=True), \
             patch('bmecat_builder.services.progress.tqdm') as mock_tqdm:
            pbar = mock_tqdm.return_value

            tracker = ProgressTracker(4)
            tracker.advance()
            tracker.advance(2)

            assert tracker.done == 3
            assert pbar.update.call_count == 2

    def test_advance_counts_when_disabled(self):
        with patch('bmecat_builder.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(2)
            tracker.advance()
            assert tracker.done == 1

    def test_context_manager_closes_bar(self):
        with patch('bmecat_builder.services.progress.is_tty_enabled', return_value=True), \
             patch('bmecat_builder.services.progress.tqdm') as mock_tqdm:
            pbar = mock_tqdm.return_value

            with ProgressTracker(1) as tracker:
                tracker.advance()

            pbar.close.assert_called_once()
            assert tracker.pbar is None
