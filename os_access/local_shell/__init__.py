# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from .local_posix_shell import local_posix_shell  # noqa: F401

local_shell = local_posix_shell
