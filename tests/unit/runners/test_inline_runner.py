import pytest

from gherkin_conductor.runners import InlineRunner


class TestInlineRunner:
    """Test the in-process host runner"""

    @pytest.fixture
    def runner(self):
        return InlineRunner()

    def test_runs_in_registration_order(self, runner):
        calls = []

        def body():
            runner.before_all(lambda: calls.append("before"))
            runner.after_all(lambda: calls.append("after"))
            runner.it("first", lambda: calls.append("first"))
            runner.it("second", lambda: calls.append("second"))

        runner.describe("group", body)

        assert calls == []
        results = runner.run()

        assert calls == ["before", "first", "second", "after"]
        assert [result.full_title for result in results] == ["group > first", "group > second"]
        assert all(result.passed for result in results)

    def test_async_thunks(self, runner):
        calls = []

        async def thunk():
            calls.append("async")

        runner.it("async unit", thunk)
        results = runner.run()

        assert calls == ["async"]
        assert results[0].passed

    def test_failure_does_not_stop_siblings(self, runner):
        def fail():
            raise AssertionError("nope")

        runner.it("failing", fail)
        runner.it("passing", lambda: None)
        results = runner.run()

        assert [result.status.value for result in results] == ["failed", "passed"]
        assert str(results[0].error) == "nope"

    def test_skipped_group_skips_nested_tests(self, runner):
        calls = []

        def inner():
            runner.it("deep", lambda: calls.append("deep"))

        def outer():
            runner.before_all(lambda: calls.append("before"))
            runner.describe("inner", inner)
            runner.it("shallow", lambda: calls.append("shallow"))

        runner.describe("outer", outer, skip=True)
        results = runner.run()

        assert calls == []
        assert [(result.full_title, result.status.value) for result in results] == [
            ("outer > inner > deep", "skipped"),
            ("outer > shallow", "skipped"),
        ]

    def test_before_all_failure_fails_the_group(self, runner):
        calls = []

        def broken():
            raise RuntimeError("setup failed")

        def body():
            runner.before_all(broken)
            runner.after_all(lambda: calls.append("after"))
            runner.it("unit", lambda: calls.append("unit"))

        runner.describe("group", body)
        results = runner.run()

        assert calls == ["after"]
        assert results[0].failed
        assert str(results[0].error) == "setup failed"

    def test_after_all_failure_is_reported(self, runner):
        def broken():
            raise RuntimeError("teardown failed")

        def body():
            runner.after_all(broken)
            runner.it("unit", lambda: None)

        runner.describe("group", body)
        results = runner.run()

        assert [(result.title, result.status.value) for result in results] == [
            ("unit", "passed"),
            ('"after all" hook', "failed"),
        ]
