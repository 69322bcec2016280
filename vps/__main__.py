# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import argparse
import os
import sys
from pathlib import Path
from typing import Sequence

from config import read_config
from convergence import Mode
from convergence import Orchestrator
from convergence import Reconciler
from convergence import ResourceFilter
from vps._catalog import build_resources
from vps._checks import build_checks
from vps._connect import connect
from vps._connect import parse_host_spec
from vps._logging import init_logging
from vps._settings import make_settings


def main(args: Sequence[str]) -> int:
    parsed_args = _parse_args(args)
    init_logging(verbose=parsed_args.verbose, quiet=parsed_args.quiet)
    host_spec = parsed_args.host
    config = read_config(hostname=host_spec.hostname if host_spec is not None else None)
    settings = make_settings(config, os.environ)
    host = connect(settings, host_spec, parsed_args.key)
    try:
        reconciler = Reconciler(build_resources(settings, host))
        if parsed_args.list:
            for resource in reconciler.resources():
                depends_on = ', '.join(sorted(resource.depends_on)) or '-'
                print(f'{resource.id:24} {resource.group:12} {depends_on:36} {resource.desired_description}')
            return 0
        selector = _selector(parsed_args.modes or [], settings.enable_sandbox)
        orchestrator = Orchestrator(reconciler, build_checks(settings, host))
        summary = orchestrator.run(selector, dry_run=parsed_args.dry_run)
    finally:
        host.close()
    for line in summary.lines():
        print(line)
    return summary.exit_status()


def _selector(modes: Sequence[Mode], enable_sandbox: bool) -> ResourceFilter:
    """Sandbox joins a full run if enabled in the environment."""
    is_full = not modes or Mode.FULL in modes
    return ResourceFilter.from_modes(modes, with_sandbox=enable_sandbox and is_full)


def _parse_args(args: Sequence[str]):
    parser = argparse.ArgumentParser(
        prog='python -m vps',
        description="Bring the server to the desired state and verify it.",
        )
    parser.add_argument(
        '--full', dest='modes', action='append_const', const=Mode.FULL,
        help="System, application and checks; the default if no mode is given.")
    parser.add_argument(
        '--system', dest='modes', action='append_const', const=Mode.SYSTEM,
        help="User, SSH, firewall, kernel, swap, logs.")
    parser.add_argument(
        '--application', dest='modes', action='append_const', const=Mode.APPLICATION,
        help="Node.js, the application, browser, gateway.")
    parser.add_argument(
        '--verify', dest='modes', action='append_const', const=Mode.VERIFY,
        help="Run the checks; with no other mode, change nothing.")
    parser.add_argument(
        '--sandbox', dest='modes', action='append_const', const=Mode.SANDBOX,
        help="Docker and the sandbox for agent tools. Part of a full run if ENABLE_SANDBOX=y.")
    parser.add_argument('--host', type=parse_host_spec, help="user@host[:port]; local machine if omitted.")
    parser.add_argument('--key', type=Path, help="SSH private key; SSH defaults if omitted.")
    parser.add_argument('--dry-run', action='store_true', help="Probe only, change nothing.")
    parser.add_argument('--list', action='store_true', help="Print resources and exit.")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('--verbose', '-v', action='store_true')
    verbosity.add_argument('--quiet', '-q', action='store_true')
    return parser.parse_args(args)


if __name__ == '__main__':
    exit(main(sys.argv[1:]))
