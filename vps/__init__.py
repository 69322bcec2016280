# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""A single-tenant server running one application: everything on it.

Run `python -m vps` to converge and verify, `python -m vps.healthcheck`
from a timer to keep the application running, `python -m vps.backup`
from cron to keep its state.
"""
from vps._catalog import build_resources
from vps._checks import build_checks
from vps._connect import HostSpec
from vps._connect import connect
from vps._connect import parse_host_spec
from vps._settings import Settings
from vps._settings import make_settings

__all__ = [
    'HostSpec',
    'Settings',
    'build_checks',
    'build_resources',
    'connect',
    'make_settings',
    'parse_host_spec',
    ]
