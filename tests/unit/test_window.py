import pytest
from pydantic import ValidationError

from routing.window import ChatMessage, build_window, normalize_messages

SYSTEM = "be precise"


def _contents(window):
    return [m.content for m in window[1:]]


class TestNormalization:

    def test_missing_role_defaults_to_user(self):
        msgs = normalize_messages([{"content": "hi"}, {"role": "", "content": "there"}])
        assert [m.role for m in msgs] == ["user", "user"]

    def test_non_string_content_is_stringified(self):
        msgs = normalize_messages([{"role": "user", "content": 42}, {"role": "user", "content": {"a": 1}}])
        assert [m.content for m in msgs] == ["42", '{"a": 1}']

    def test_blank_and_missing_content_dropped(self):
        msgs = normalize_messages([{"role": "user", "content": "   "}, {"role": "user"}, {"content": None}, {"content": "ok"}])
        assert [m.content for m in msgs] == ["ok"]

    def test_non_dict_items_and_non_list_input_ignored(self):
        assert normalize_messages(["hello", 3, None]) == []
        assert normalize_messages({"role": "user", "content": "hi"}) == []
        assert normalize_messages(None) == []

    def test_content_is_kept_as_sent(self):
        msgs = normalize_messages([{"content": "  padded\n"}])
        assert msgs[0].content == "  padded\n"

    def test_messages_are_immutable(self):
        msg = ChatMessage(role="user", content="hi")
        with pytest.raises(ValidationError):
            msg.content = "changed"


class TestBuildWindow:

    def test_system_prompt_is_prepended(self):
        window = build_window([{"role": "user", "content": "hi"}], 1000, SYSTEM)
        assert window[0] == ChatMessage(role="system", content=SYSTEM)
        assert _contents(window) == ["hi"]

    def test_empty_input_yields_only_system(self):
        window = build_window([], 1000, SYSTEM)
        assert len(window) == 1 and window[0].role == "system"

    def test_newest_messages_win(self):
        raw = [{"content": "a" * 40}, {"content": "b" * 40}, {"content": "c" * 40}]
        assert _contents(build_window(raw, 100, SYSTEM)) == ["b" * 40, "c" * 40]

    def test_stops_at_first_overflow(self):
        # the small oldest message would fit, but the window must stay contiguous
        raw = [{"content": "old"}, {"content": "x" * 500}, {"content": "new"}]
        assert _contents(build_window(raw, 100, SYSTEM)) == ["new"]

    def test_exact_budget_is_kept(self):
        raw = [{"content": "a" * 50}, {"content": "b" * 50}]
        assert len(build_window(raw, 100, SYSTEM)) == 3

    def test_oversized_latest_leaves_only_system(self):
        window = build_window([{"content": "x" * 101}], 100, SYSTEM)
        assert window == [ChatMessage(role="system", content=SYSTEM)]

    @pytest.mark.parametrize("budget", [1, 15, 60, 120, 1000])
    def test_window_is_bounded_contiguous_suffix(self, budget):
        raw = [{"role": "user", "content": f"message number {i} " * (i % 4 + 1)} for i in range(12)]
        window = build_window(raw, budget, SYSTEM)
        kept = _contents(window)
        original = [m["content"] for m in raw]
        assert sum(len(c) for c in kept) <= budget
        assert kept == original[len(original) - len(kept):]
