from __future__ import annotations

import ast
import textwrap

from shortgate.model import RULE_FORBIDDEN_CALL, ForbiddenCallSpec, TestCategory
from shortgate.scan.forbidden_calls import forbidden_call_message, is_forbidden_call, scan_forbidden_calls

SPECS = (ForbiddenCallSpec.parse("time.sleep"), ForbiddenCallSpec.parse("testing.short"))


def _scan(source: str, specs=SPECS) -> list[str]:
    tree = ast.parse(textwrap.dedent(source))
    return [item.render() for item in scan_forbidden_calls(tree, specs, path="pkg/foo_test.py")]


def test_scan_reports_each_forbidden_call_with_position() -> None:
    rendered = _scan(
        """
        import time

        def test_waits():
            time.sleep(1)
        """
    )
    assert rendered == ["pkg/foo_test.py:5:5:invalid time.sleep() call in unit tests."]


def test_scan_finds_calls_anywhere_in_the_file() -> None:
    rendered = _scan(
        """
        import time
        from shortgate import testing

        time.sleep(0)

        class Helper:
            def wait(self):
                return [time.sleep(x) for x in range(2)]

        def test_mode():
            if testing.short():
                return
        """
    )
    assert rendered == [
        "pkg/foo_test.py:5:1:invalid time.sleep() call in unit tests.",
        "pkg/foo_test.py:9:17:invalid time.sleep() call in unit tests.",
        "pkg/foo_test.py:12:8:invalid testing.short() call in unit tests.",
    ]


def test_scan_ignores_aliases_references_and_other_members() -> None:
    rendered = _scan(
        """
        import time
        from time import sleep
        import time as t

        def test_ok():
            sleep(1)
            t.sleep(1)
            time.monotonic()
            waiter = time.sleep
            obj.time.sleep(1)
        """
    )
    assert rendered == []


def test_scan_orders_diagnostics_by_position() -> None:
    tree = ast.parse("time.sleep(1); time.sleep(2)\ntime.sleep(3)\n")
    diagnostics = scan_forbidden_calls(tree, SPECS, path="a_test.py")
    assert [(d.position.line, d.position.column) for d in diagnostics] == [(1, 1), (1, 16), (2, 1)]
    assert {d.rule for d in diagnostics} == {RULE_FORBIDDEN_CALL}
    assert {d.category for d in diagnostics} == {TestCategory.UNIT}


def test_is_forbidden_call_requires_a_call_node() -> None:
    spec = ForbiddenCallSpec.parse("time.sleep")
    call = ast.parse("time.sleep(1)").body[0].value
    attribute = ast.parse("time.sleep").body[0].value
    assert is_forbidden_call(call, spec)
    assert not is_forbidden_call(attribute, spec)


def test_forbidden_call_message_uses_the_qualified_name() -> None:
    spec = ForbiddenCallSpec.parse("os.system")
    assert forbidden_call_message(spec) == "invalid os.system() call in unit tests."
    assert _scan("os.system('ls')\n", specs=(spec,)) == [
        "pkg/foo_test.py:1:1:invalid os.system() call in unit tests."
    ]
