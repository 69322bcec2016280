# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import importlib
import logging
import os
import sys
import unittest
from argparse import ArgumentParser
from pathlib import Path
from pathlib import PurePath
from typing import List

# Test modules live in tests/ dirs of these packages.
_packages = ['convergence', 'os_access', 'vps']


def main(args):
    parser = ArgumentParser()
    parser.add_argument(
        'packages',
        nargs='*',
        default=_packages,
        help="packages to test, default: %(default)s",
        )
    parser.add_argument('-k', dest='name_patterns', action='append', help="like unittest -k")
    parsed_args = parser.parse_args(args)
    loader = unittest.TestLoader()
    if parsed_args.name_patterns:
        loader.testNamePatterns = [
            p if '*' in p else f'*{p}*'
            for p in parsed_args.name_patterns
            ]
    suite = unittest.TestSuite()
    for package in parsed_args.packages:
        for python_file in _collect(_root / package):
            module_name = _build_module_name(python_file)
            _logger.debug("Import: %s", module_name)
            module = importlib.import_module(module_name)
            suite.addTests(loader.loadTestsFromModule(module))
    _logger.info("Collected %d tests", suite.countTestCases())
    if os.getenv('DRY_RUN'):
        _logger.info("Dry run: would run unittests")
        return 0
    runner = unittest.TextTestRunner(stream=sys.stdout, verbosity=2)
    result = runner.run(suite)
    return 0 if result.wasSuccessful() else 10


def _collect(package_dir: Path) -> List[Path]:
    """Test modules of a package, in a stable order.

    >>> [p.name for p in _collect(_root / 'convergence')]  # doctest: +ELLIPSIS
    [...'test_reconciler.py'...]
    """
    result = []
    for tests_dir in sorted(package_dir.rglob('tests')):
        if not tests_dir.is_dir():
            continue
        result.extend(sorted(tests_dir.glob('test_*.py')))
    return result


def _build_module_name(path: PurePath):
    """Build module name from path.

    >>> _build_module_name(_root / 'vps/tests/test_kinds.py')
    'vps.tests.test_kinds'
    """
    path = path.relative_to(_root)
    path = path.with_suffix('')
    return '.'.join(path.parts)


_logger = logging.getLogger(__name__)
_root = Path(__file__).parent.parent
assert str(_root) in sys.path

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    exit(main(sys.argv[1:]))
