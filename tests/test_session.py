"""Unit tests for the editor session."""

import unittest
from unittest.mock import Mock

from pagedraft.commands import InsertText, SetBlockType, ToggleMark
from pagedraft.html_io import to_html
from pagedraft.model import BlockKind, MarkKind, Position, Selection
from pagedraft.notifier import Stage
from pagedraft.pagination import MeasurementUnavailable
from pagedraft.session import EditorSession


class FakeMeasure:
    """Reports a fixed content height and remembers the stats it saw."""

    def __init__(self, height=0):
        self.height = height
        self.session = None
        self.seen_word_counts = []

    def __call__(self):
        if self.session is not None:
            self.seen_word_counts.append(self.session.word_count)
        if self.height is None:
            raise MeasurementUnavailable()
        return self.height


class FakeResizeSource:
    """Resize events delivered by hand."""

    def __init__(self):
        self.listeners = []
        self.unsubscribe_calls = 0

    def __call__(self, listener):
        self.listeners.append(listener)

        def unsubscribe():
            self.unsubscribe_calls += 1
            self.listeners.remove(listener)

        return unsubscribe

    def fire(self):
        for listener in list(self.listeners):
            listener()


class TestEditorSession(unittest.TestCase):
    """Test session lifecycle, dispatch and derived state."""

    def setUp(self):
        self.measure = FakeMeasure()
        self.resize = FakeResizeSource()
        self.prompt = Mock(return_value="https://example.com")
        self.session = EditorSession(
            measure_height=self.measure,
            prompt_text=self.prompt,
            resize_source=self.resize,
        )
        self.measure.session = self.session
        self.session.init()

    def tearDown(self):
        self.session.teardown()

    def test_new_session_is_empty(self):
        """A fresh session has one page and no words."""
        self.assertTrue(self.session.active)
        self.assertEqual(self.session.page_count, 1)
        self.assertEqual(self.session.word_count, 0)
        self.assertEqual(self.session.char_count, 0)
        self.assertEqual(len(self.session.document.textblocks()), 1)

    def test_typing_updates_stats(self):
        changed = self.session.dispatch(InsertText("Hello world"))
        self.assertTrue(changed)
        self.assertEqual(self.session.char_count, 11)
        self.assertEqual(self.session.word_count, 2)
        self.assertEqual(self.session.page_count, 1)

    def test_tall_content_adds_pages(self):
        self.measure.height = 3000
        self.session.dispatch(InsertText("x"))
        self.assertEqual(self.session.page_count, 4)
        self.assertEqual(len(self.session.pages), 4)

    def test_stats_are_current_when_pagination_runs(self):
        self.session.dispatch(InsertText("one two three"))
        self.assertEqual(self.measure.seen_word_counts[-1], 3)

    def test_noop_command_does_not_notify(self):
        listener = Mock()
        self.session.notifier.subscribe(Stage.RENDER, listener)
        changed = self.session.dispatch(SetBlockType(BlockKind.HEADING, 7))
        self.assertFalse(changed)
        listener.assert_not_called()

    def test_selection_only_change_does_not_notify(self):
        listener = Mock()
        self.session.notifier.subscribe(Stage.RENDER, listener)
        changed = self.session.dispatch(ToggleMark(MarkKind.BOLD))
        self.assertFalse(changed)
        self.assertTrue(self.session.is_active("bold"))
        listener.assert_not_called()

    def test_notifies_render_after_change(self):
        listener = Mock()
        self.session.notifier.subscribe(Stage.RENDER, listener)
        self.session.dispatch(InsertText("a"))
        listener.assert_called_once_with(self.session.document)

    def test_resize_with_same_height_keeps_page_count(self):
        self.measure.height = 2000
        self.session.dispatch(InsertText("x"))
        self.assertEqual(self.session.page_count, 3)
        self.resize.fire()
        self.assertEqual(self.session.page_count, 3)

    def test_resize_remeasures(self):
        self.measure.height = 2000
        self.resize.fire()
        self.assertEqual(self.session.page_count, 3)

    def test_measurement_unavailable_keeps_page_count(self):
        self.measure.height = 2000
        self.resize.fire()
        self.measure.height = None
        self.session.dispatch(InsertText("x"))
        self.assertEqual(self.session.page_count, 3)

    def test_teardown_unsubscribes_once(self):
        self.session.teardown()
        self.session.teardown()
        self.assertFalse(self.session.active)
        self.assertEqual(self.resize.unsubscribe_calls, 1)
        self.assertEqual(self.resize.listeners, [])

    def test_set_selection_rejects_out_of_range(self):
        self.assertFalse(self.session.set_selection(Selection.caret(4, 0)))
        self.assertEqual(self.session.selection, Selection.caret())

    def test_select_all(self):
        self.session.dispatch(InsertText("ab\ncde"))
        self.session.select_all()
        self.assertEqual(self.session.selection.from_, Position(0, 0))
        self.assertEqual(self.session.selection.to, Position(1, 3))

    def test_prompt_link(self):
        self.session.dispatch(InsertText("Hello"))
        self.session.select_all()
        self.assertTrue(self.session.prompt_link())
        self.prompt.assert_called_once_with("Enter URL:")
        self.assertTrue(self.session.is_active("link"))

    def test_cancelled_prompt_leaves_document(self):
        self.session.dispatch(InsertText("Hello"))
        self.session.select_all()
        before = self.session.document
        self.prompt.return_value = None
        self.assertFalse(self.session.prompt_link())
        self.assertIs(self.session.document, before)

    def test_export(self):
        self.session.dispatch(InsertText("Hello"))
        artifact = self.session.export()
        self.assertEqual(artifact.filename, "document.html")
        self.assertEqual(artifact.mime_type, "text/html")
        self.assertEqual(artifact.content, to_html(self.session.document))

    def test_print_without_trigger(self):
        success, message = self.session.print_document()
        self.assertFalse(success)
        self.assertIn("not available", message)


class TestSessionLifecycle(unittest.TestCase):
    """Test construction options and context manager use."""

    def test_initial_content(self):
        session = EditorSession(measure_height=lambda: 0,
                                initial_content="<h1>Title</h1><p>Body text</p>")
        with session:
            self.assertEqual(session.document.textblocks()[0].kind, BlockKind.HEADING)
            self.assertEqual(session.word_count, 3)
        self.assertFalse(session.active)

    def test_context_manager_releases_resize(self):
        resize = FakeResizeSource()
        with EditorSession(measure_height=lambda: 0, resize_source=resize):
            self.assertEqual(len(resize.listeners), 1)
        self.assertEqual(resize.listeners, [])

    def test_print_trigger(self):
        trigger = Mock(return_value=(True, ""))
        session = EditorSession(measure_height=lambda: 0, print_trigger=trigger)
        with session:
            self.assertEqual(session.print_document(), (True, ""))
        trigger.assert_called_once_with()

    def test_no_prompt_capability(self):
        with EditorSession(measure_height=lambda: 0) as session:
            self.assertFalse(session.prompt_link())

    def test_init_twice_is_harmless(self):
        resize = FakeResizeSource()
        session = EditorSession(measure_height=lambda: 0, resize_source=resize)
        session.init()
        session.init()
        self.assertEqual(len(resize.listeners), 1)
        session.teardown()


if __name__ == '__main__':
    unittest.main()
