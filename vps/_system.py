# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import re
import shlex
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Sequence
from typing import Tuple

from convergence import ConvergeError
from convergence import ProbeError
from convergence import State
from vps._kinds import HostResource


def patch_directives(text: str, directives: Mapping[str, str]) -> str:
    """Set directives in place, uncommenting them; leave others untouched.

    Directives that are not mentioned in the text at all are not added.

    >>> text = '#PermitRootLogin prohibit-password\\nPort 22\\nPasswordAuthentication yes\\n'
    >>> print(patch_directives(text, {'PermitRootLogin': 'no', 'PasswordAuthentication': 'no'}), end='')
    PermitRootLogin no
    Port 22
    PasswordAuthentication no
    """
    for key, value in directives.items():
        pattern = re.compile(rf'^#*{re.escape(key)}\b.*$', re.MULTILINE)
        text = pattern.sub(f'{key} {value}', text)
    return text


class SshHardening(HostResource):
    """Drop-in config for sshd plus directives patched in the main config.

    The result is validated with `sshd -t` before the daemon is restarted;
    rejected changes are rolled back.
    """

    _main_config = '/etc/ssh/sshd_config'

    def __init__(
            self,
            resource_id,
            host,
            drop_in_path: str,
            drop_in: str,
            directives: Mapping[str, str],
            obsolete: Sequence[str] = (),
            service: str = 'ssh',
            **kwargs):
        kwargs.setdefault('description', "sshd accepts keys only, no root login")
        super().__init__(resource_id, **kwargs)
        self._host = host
        self._drop_in_path = drop_in_path
        self._drop_in = drop_in.encode()
        self._directives = dict(directives)
        self._obsolete = list(obsolete)
        self._service = service

    def _desired_main(self, current: bytes) -> bytes:
        return patch_directives(current.decode(), self._directives).encode()

    def _probe(self):
        files = self._host.files
        main = files.read(self._main_config)
        if main is None:
            raise ProbeError(f"{self.id}: {self._main_config} not found; is openssh-server installed?")
        drop_in = files.read(self._drop_in_path)
        if drop_in is None:
            return State.ABSENT
        if drop_in != self._drop_in:
            return State.MISMATCHED
        if self._desired_main(main) != main:
            return State.MISMATCHED
        if any(files.exists(path) for path in self._obsolete):
            return State.MISMATCHED
        return State.PRESENT

    def _create(self):
        files = self._host.files
        main = files.read(self._main_config)
        if main is None:
            raise ConvergeError(f"{self.id}: {self._main_config} not found")
        meta = files.meta(self._main_config)
        if meta is None:
            raise ConvergeError(f"{self.id}: cannot stat {self._main_config}")
        previous_drop_in = files.read(self._drop_in_path)
        patched = self._desired_main(main)
        if patched != main:
            files.write(self._main_config, patched, meta.mode, meta.owner)
        files.write(self._drop_in_path, self._drop_in, 0o644, 'root')
        r = self._host.shell.run(['sshd', '-t'], check=False)
        if r.returncode != 0:
            _logger.error("%s: sshd rejected the config, roll back", self.id)
            files.write(self._main_config, main, meta.mode, meta.owner)
            if previous_drop_in is None:
                files.remove(self._drop_in_path)
            else:
                files.write(self._drop_in_path, previous_drop_in, 0o644, 'root')
            raise ConvergeError(f"{self.id}: sshd -t: {r.stderr.decode(errors='backslashreplace')}")
        for path in self._obsolete:
            files.remove(path)
        self._host.services.restart(self._service)


class UfwStatus(NamedTuple):

    active: bool
    defaults: Optional[str]
    allowed: Sequence[str]


def parse_ufw_status(text: str) -> UfwStatus:
    """Parse `ufw status verbose`.

    >>> status = parse_ufw_status('''Status: active
    ... Logging: on (low)
    ... Default: deny (incoming), allow (outgoing), disabled (routed)
    ... New profiles: skip
    ...
    ... To                         Action      From
    ... --                         ------      ----
    ... 22/tcp                     ALLOW IN    Anywhere                   # SSH
    ... 22/tcp (v6)                ALLOW IN    Anywhere (v6)              # SSH
    ... ''')
    >>> status.active, status.defaults, status.allowed
    (True, 'deny (incoming), allow (outgoing), disabled (routed)', ['22/tcp', '22/tcp (v6)'])
    >>> parse_ufw_status('Status: inactive\\n')
    UfwStatus(active=False, defaults=None, allowed=[])
    """
    active = False
    defaults = None
    allowed = []
    for line in text.splitlines():
        if line.startswith('Status:'):
            active = line.split(':', 1)[1].strip() == 'active'
        elif line.startswith('Default:'):
            defaults = line.split(':', 1)[1].strip()
        else:
            match = re.match(r'^(\S+(?: \(v6\))?)\s+ALLOW(?: IN)?\s', line)
            if match:
                allowed.append(match.group(1))
    return UfwStatus(active, defaults, allowed)


class UfwFirewall(HostResource):
    """Deny incoming except the listed ports, allow outgoing."""

    def __init__(self, resource_id, shell, allow: Sequence[Tuple[str, str]], **kwargs):
        ports = ', '.join(port for port, _comment in allow)
        kwargs.setdefault('description', f"firewall active, incoming denied except {ports}")
        super().__init__(resource_id, **kwargs)
        self._shell = shell
        self._allow = list(allow)

    def _probe(self):
        r = self._shell.run(['ufw', 'status', 'verbose'], check=False)
        if r.returncode != 0:
            raise ProbeError(f"{self.id}: ufw status: exit status {r.returncode}")
        status = parse_ufw_status(r.stdout.decode())
        if not status.active:
            return State.ABSENT
        if not status.defaults or not status.defaults.startswith('deny (incoming), allow (outgoing)'):
            return State.MISMATCHED
        if any(port not in status.allowed for port, _comment in self._allow):
            return State.MISMATCHED
        return State.PRESENT

    def _create(self):
        self._shell.run(['ufw', 'default', 'deny', 'incoming'])
        self._shell.run(['ufw', 'default', 'allow', 'outgoing'])
        for port, comment in self._allow:
            self._shell.run(['ufw', 'allow', port, 'comment', comment])
        self._shell.run(['ufw', '--force', 'enable'])


class SwapActive(HostResource):
    """Some swap is active; if it is our swap file, it survives reboots.

    Swap configured otherwise (e.g. by the hosting provider) is left alone.
    """

    def __init__(self, resource_id, host, path: str, size: str, **kwargs):
        kwargs.setdefault('description', f"swap active ({path}, {size})")
        super().__init__(resource_id, **kwargs)
        self._host = host
        self._path = path
        self._size = size
        self._fstab_line = f'{path} none swap sw 0 0'

    def _active(self):
        r = self._host.shell.run(['swapon', '--show=NAME', '--noheadings', '--raw'])
        return r.stdout.decode().split()

    def _in_fstab(self):
        fstab = (self._host.files.read('/etc/fstab') or b'').decode()
        return any(line.split()[:1] == [self._path] for line in fstab.splitlines())

    def _probe(self):
        active = self._active()
        if self._path in active:
            return State.PRESENT if self._in_fstab() else State.MISMATCHED
        if active:
            _logger.info("%s: other swap is active: %s", self.id, ', '.join(active))
            return State.PRESENT
        return State.ABSENT

    def _create(self):
        shell = self._host.shell
        if not self._host.files.exists(self._path):
            shell.run(['fallocate', '-l', self._size, self._path])
        shell.run(['chmod', 'u=rw,go=', self._path])
        shell.run(['mkswap', self._path])
        shell.run(['swapon', self._path])
        self._repair()

    def _repair(self):
        if self._in_fstab():
            return
        line = shlex.quote(self._fstab_line)
        self._host.shell.run(f'echo {line} >> /etc/fstab')


class SystemUpgraded(HostResource):

    def __init__(self, resource_id, packages, **kwargs):
        kwargs.setdefault('description', "no upgradable packages")
        super().__init__(resource_id, **kwargs)
        self._packages = packages

    def _probe(self):
        upgradable = self._packages.upgradable()
        if upgradable:
            _logger.info("%s: upgradable: %s", self.id, ' '.join(upgradable))
            return State.MISMATCHED
        return State.PRESENT

    def _create(self):
        self._packages.upgrade()


def key_identity(line: str) -> Optional[Tuple[str, str]]:
    """Algorithm and body of an authorized_keys line; options and comment ignored.

    >>> key_identity('ssh-ed25519 AAAAC3Nz me@laptop')
    ('ssh-ed25519', 'AAAAC3Nz')
    >>> key_identity('from="10.0.0.1" ecdsa-sha2-nistp256 AAAAE2Vj')
    ('ecdsa-sha2-nistp256', 'AAAAE2Vj')
    >>> key_identity('# comment') is None
    True
    """
    tokens = line.split()
    for i, token in enumerate(tokens[:-1]):
        if token.startswith(('ssh-', 'ecdsa-', 'sk-')):
            return token, tokens[i + 1]
    return None


class AuthorizedKey(HostResource):

    def __init__(self, resource_id, files, user: str, home: str, pubkey: str, **kwargs):
        identity = key_identity(pubkey)
        if identity is None:
            raise ValueError(f"Not an SSH public key: {pubkey!r}")
        kwargs.setdefault('description', f"{user} can log in with {identity[0]} key")
        super().__init__(resource_id, **kwargs)
        self._files = files
        self._user = user
        self._pubkey = pubkey.strip()
        self._identity = identity
        self._dir = f'{home}/.ssh'
        self._path = f'{self._dir}/authorized_keys'

    def _has_key(self, content: bytes):
        return any(key_identity(line) == self._identity for line in content.decode().splitlines())

    def _probe(self):
        content = self._files.read(self._path)
        if content is None:
            return State.ABSENT
        if not self._has_key(content):
            return State.MISMATCHED
        meta = self._files.meta(self._path)
        if meta is None or meta.mode != 0o600 or meta.owner != self._user:
            return State.MISMATCHED
        return State.PRESENT

    def _create(self):
        self._files.make_dir(self._dir, 0o700, self._user)
        content = self._files.read(self._path) or b''
        if not self._has_key(content):
            if content and not content.endswith(b'\n'):
                content += b'\n'
            content += self._pubkey.encode() + b'\n'
        self._files.write(self._path, content, 0o600, self._user)


_logger = logging.getLogger(__name__)
