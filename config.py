# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import fnmatch
import logging
import socket
from configparser import ConfigParser
from pathlib import Path
from typing import Mapping
from typing import Optional
from typing import Sequence

_logger = logging.getLogger(__name__)


def read_config(hostname: Optional[str] = None, paths: Optional[Sequence[Path]] = None) -> Mapping[str, str]:
    """Read and resolve overrides according to versions.

    Sections are host masks, like "[vps-*.example.com]", matched
    against the machine being configured; "[defaults]" matches any.
    Optionally add ";v123" to sections like "[vps-???;v45]".
    If not specified, "v0" is assumed.
    Higher versions override lower versions.

    The per-user file overrides the file in the repository
    when versions are equal.
    """
    if hostname is None:
        hostname = socket.gethostname()
    if paths is None:
        paths = default_config_paths
    config_parts = []
    for path_i, path in enumerate(paths):
        config_parser = ConfigParser(interpolation=None)
        config_parser.read(path)
        for section_i, section in enumerate(config_parser.sections()):
            mask, version = _parse_section_header(section)
            if fnmatch.fnmatch(hostname, mask):
                _logger.info("Config %s: section %s: read", path, section)
                items = config_parser.items(section)
                config_parts.append((version, path_i, section_i, items))
            else:
                _logger.debug("Config %s: section %s: skip", path, section)
    config_parts.sort()
    config = {}
    for _version, _path_i, _section_i, items in config_parts:
        config.update(items)
    return config


def _parse_section_header(section):
    """Split a section name into a host mask and a version.

    >>> _parse_section_header('defaults')
    ('*', 0)
    >>> _parse_section_header('vps-*.example.com;v3')
    ('vps-*.example.com', 3)
    >>> _parse_section_header('vps-01;x3')  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
    ...
    ValueError: Unknown x3 in vps-01;x3
    """
    if section == 'defaults':
        return '*', 0
    else:
        mask, semicolon, extra = section.partition(';')
        if not extra:
            return mask, 0
        elif extra.startswith('v'):
            try:
                return mask, int(extra[1:])
            except ValueError:
                raise ValueError(f"Cannot parse {extra} in {section}")
        else:
            raise ValueError(f"Unknown {extra} in {section}")


default_config_paths = [
    Path(__file__).with_name('config.ini'),
    Path('~/.config/vps_converge.ini').expanduser(),
    ]

if __name__ == '__main__':
    for k, v in read_config().items():
        print(k + '=' + v)
