from shortgate.scan.forbidden_calls import scan_forbidden_calls
from shortgate.scan.guard import GuardSpec, check_function, check_tree
from shortgate.scan.nodes import iter_nodes, iter_test_functions

__all__ = [
    "GuardSpec",
    "check_function",
    "check_tree",
    "iter_nodes",
    "iter_test_functions",
    "scan_forbidden_calls",
]
