import pytest

from gherkin_conductor.runtime.hooks import HookKind, HookRegistry, ordered_hooks


class TestHookRegistry:
    """Test Before/After/Setup/Teardown hook bookkeeping"""

    @pytest.fixture
    def hooks(self):
        return HookRegistry()

    def test_direct_and_decorator_registration(self, hooks):
        def first(context):
            pass

        hooks.before(first)

        @hooks.before()
        def second(context):
            pass

        assert [hook.action for hook in hooks.select(HookKind.BEFORE)] == [first, second]

    def test_after_hooks_run_in_reverse(self, hooks):
        hooks.after(lambda context: "first")
        hooks.after(lambda context: "second")

        assert [hook.action(None) for hook in hooks.select(HookKind.AFTER)] == ["second", "first"]

    def test_tag_filtered_hooks(self, hooks):
        """Test that a hook with a tag filter only applies to matching tags"""
        hooks.before(lambda context: None, tags="@db")

        assert len(hooks.select(HookKind.BEFORE, ["@db"])) == 1
        assert hooks.select(HookKind.BEFORE, ["@ui"]) == []

    def test_setup_and_teardown_are_separate_kinds(self, hooks):
        hooks.setup(lambda: None)
        hooks.teardown(lambda: None)

        assert len(hooks.select(HookKind.SETUP)) == 1
        assert len(hooks.select(HookKind.TEARDOWN)) == 1
        assert hooks.select(HookKind.BEFORE) == []

    def test_nested_scopes(self):
        """Test that outer Before hooks run first and outer After hooks run last"""
        outer, inner = HookRegistry(), HookRegistry()
        outer.before(lambda c: "outer")
        inner.before(lambda c: "inner")
        outer.after(lambda c: "outer")
        inner.after(lambda c: "inner")

        before = [hook.action(None) for hook in ordered_hooks(HookKind.BEFORE, [outer, inner])]
        after = [hook.action(None) for hook in ordered_hooks(HookKind.AFTER, [outer, inner])]

        assert before == ["outer", "inner"]
        assert after == ["inner", "outer"]

    def test_non_callable_hook(self, hooks):
        with pytest.raises(TypeError):
            hooks.add(HookKind.BEFORE, "not callable")
