# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import doctest
import importlib
import logging
import os
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import Iterable
from typing import List

# Same packages run_unittest.py walks, plus top-level modules.
_packages = ['convergence', 'os_access', 'vps', 'linter', 'config.py']


def main(args):
    parser = ArgumentParser()
    parser.add_argument(
        'paths',
        nargs='*',
        default=_packages,
        help="packages or modules relative to the repo root, default: %(default)s",
        )
    parser.add_argument('--verbose', '-v', action='store_true')
    parsed_args = parser.parse_args(args)
    modules = [
        _module_name(path)
        for p in parsed_args.paths
        for path in _collect(_root / p)
        ]
    _logger.info("Collected %d modules", len(modules))
    if os.getenv('DRY_RUN'):
        _logger.info("Dry run: would run doctests")
        return 0
    finder = doctest.DocTestFinder()
    runner = doctest.DocTestRunner(verbose=parsed_args.verbose)
    for module_name in modules:
        module = importlib.import_module(module_name)
        for test in finder.find(module):
            if test.examples:
                runner.run(test)
    results = runner.summarize(verbose=parsed_args.verbose)
    _logger.info("Doctests: %d attempted, %d failed", results.attempted, results.failed)
    return 10 if results.failed else 0


def _collect(path: Path) -> List[Path]:
    """Modules with possible doctests; tests and entrypoints are not.

    >>> [p.name for p in _collect(_root / 'convergence')]  # doctest: +ELLIPSIS
    ['__init__.py', '_checks.py', ...]
    >>> [p.name for p in _collect(_root / 'vps')]  # doctest: +ELLIPSIS
    [...'_catalog.py'...]
    >>> '__main__.py' in [p.name for p in _collect(_root / 'vps')]
    False
    """
    if path.is_file():
        return [path]
    return sorted(p for p in path.rglob('*.py') if not _is_skipped(p.relative_to(_root).parts))


def _is_skipped(parts: Iterable[str]) -> bool:
    """Skip tests, entrypoints that run on import and hidden dirs.

    >>> _is_skipped(('vps', 'tests', 'test_kinds.py'))
    True
    >>> _is_skipped(('vps', '__main__.py'))
    True
    >>> _is_skipped(('vps', 'backup.py'))
    False
    """
    parts = list(parts)
    if parts[-1] == '__main__.py':
        return True
    return any(part == 'tests' or part.startswith('.') or part == '__pycache__' for part in parts)


def _module_name(path: Path) -> str:
    """Module name by its path in the repo.

    >>> _module_name(_root / 'os_access/local_shell/__init__.py')
    'os_access.local_shell'
    >>> _module_name(_root / 'config.py')
    'config'
    """
    parts = path.relative_to(_root).with_suffix('').parts
    if parts[-1] == '__init__':
        parts = parts[:-1]
    return '.'.join(parts)


_logger = logging.getLogger(__name__)
_root = Path(__file__).parent.parent
assert str(_root) in sys.path

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    exit(main(sys.argv[1:]))
