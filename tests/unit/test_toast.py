"""
Unit tests for toast notifications.
"""

import io

from rich.console import Console

from studyloop.delivery.toast import ToastCenter


class TestToastCenter:

    def test_show_records_history(self):
        toasts = ToastCenter()
        toasts.show("Study session saved!", "success")
        toasts("Failed to save progress", "error")

        assert [t.kind for t in toasts.history] == ["success", "error"]
        assert toasts.last.message == "Failed to save progress"

    def test_history_is_bounded(self):
        toasts = ToastCenter(history_size=2)
        for i in range(5):
            toasts.show(f"toast {i}")
        assert [t.message for t in toasts.history] == ["toast 3", "toast 4"]

    def test_printed_when_console_given(self):
        console = Console(file=io.StringIO(), width=80)
        ToastCenter(console).show('Successfully cloned "Algebra"!', "success")
        assert 'Successfully cloned "Algebra"!' in console.file.getvalue()

    def test_bracketed_message_printed_verbatim(self):
        console = Console(file=io.StringIO(), width=80)
        ToastCenter(console).show('Successfully cloned "Tags [/b] explained"!', "success")
        assert 'Successfully cloned "Tags [/b] explained"!' in console.file.getvalue()

    def test_last_is_none_when_empty(self):
        assert ToastCenter().last is None
