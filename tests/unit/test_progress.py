from __future__ import annotations

from unittest.mock import Mock, patch

from logsheet.services.progress import ProgressTracker, is_tty_enabled

"""Row mapping progress tracker."""


def test_is_tty_enabled_returns_stdout_isatty():
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True

    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:
    """Test cases for ProgressTracker class."""

    def test_init_with_tty_enabled(self):
        with patch('logsheet.services.progress.is_tty_enabled', return_value=True), \
             patch('logsheet.services.progress.tqdm') as mock_tqdm:

            tracker = ProgressTracker(120, description="Mapping GEOLOGY")

            assert tracker.total_rows == 120
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=120,
                desc="Mapping GEOLOGY",
                unit="row",
                disable=False,
                leave=False,
                position=0,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch('logsheet.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(5)
            assert tracker.enabled is False
            assert tracker.pbar is None

    def test_advance(self):
        mock_pbar = Mock()
        with patch('logsheet.services.progress.is_tty_enabled', return_value=True), \
             patch('logsheet.services.progress.tqdm', return_value=mock_pbar):
            tracker = ProgressTracker(3)
            tracker.advance()
            tracker.advance(2)
            assert tracker.current_row == 3
            assert mock_pbar.update.call_count == 2

    def test_advance_without_tty_counts_only(self):
        with patch('logsheet.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(3)
            tracker.advance()
            assert tracker.current_row == 1

    def test_context_manager_closes(self):
        mock_pbar = Mock()
        with patch('logsheet.services.progress.is_tty_enabled', return_value=True), \
             patch('logsheet.services.progress.tqdm', return_value=mock_pbar):
            with ProgressTracker(3) as tracker:
                tracker.set_postfix(sheet="GEOLOGY")
            mock_pbar.set_postfix.assert_called_once_with(sheet="GEOLOGY")
            mock_pbar.close.assert_called_once()
            assert tracker.pbar is None
