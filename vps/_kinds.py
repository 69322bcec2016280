# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import json
import logging
from abc import abstractmethod
from contextlib import contextmanager
from subprocess import CalledProcessError
from subprocess import TimeoutExpired
from typing import Any
from typing import Callable
from typing import Optional
from typing import Sequence

from convergence import ConvergeError
from convergence import ProbeError
from convergence import Resource
from convergence import State
from os_access import FileState
from os_access import ImageBuildError
from os_access import PackageInstallError
from os_access import ServiceNotActive
from os_access import ServiceNotFoundError
from os_access import SshNotConnected
from os_access import WaitTimeout

_ADAPTER_ERRORS = (
    CalledProcessError,
    TimeoutExpired,
    OSError,
    SshNotConnected,
    ServiceNotActive,
    ServiceNotFoundError,
    PackageInstallError,
    ImageBuildError,
    WaitTimeout,
    )


@contextmanager
def _adapter_errors(error_cls, resource_id):
    try:
        yield
    except _ADAPTER_ERRORS as e:
        raise error_cls(f"{resource_id}: {e}") from e


class HostResource(Resource):
    """Resource reaching the machine through os_access adapters.

    Failures of the adapters become ProbeError and ConvergeError
    so that the Reconciler can record them and go on.
    """

    def probe(self) -> State:
        with _adapter_errors(ProbeError, self.id):
            return self._probe()

    def converge(self):
        with _adapter_errors(ConvergeError, self.id):
            super().converge()

    @abstractmethod
    def _probe(self) -> State:
        pass


class PackagesInstalled(HostResource):

    def __init__(self, resource_id, packages, names: Sequence[str], **kwargs):
        kwargs.setdefault('description', f"installed: {', '.join(names)}")
        super().__init__(resource_id, **kwargs)
        self._packages = packages
        self._names = list(names)

    def _missing(self):
        return [n for n in self._names if not self._packages.is_installed(n)]

    def _probe(self):
        missing = self._missing()
        if not missing:
            return State.PRESENT
        if len(missing) == len(self._names):
            return State.ABSENT
        return State.MISMATCHED

    def _create(self):
        self._packages.install(*self._missing())


class FileContent(HostResource):
    """A whole file with fixed content, mode and owner.

    If `validate` is given, the new content is written aside first and
    validated; the file is replaced only if the validation passes.
    `{path}` in the validation command is the file aside.
    Commands in `then` run after every change, e.g. to apply it.
    """

    def __init__(
            self,
            resource_id,
            host,
            path: str,
            content: str,
            mode: int = 0o644,
            owner: str = 'root',
            validate: Optional[Sequence[str]] = None,
            then: Sequence[Sequence[str]] = (),
            **kwargs):
        kwargs.setdefault('description', f"{path} is up to date")
        super().__init__(resource_id, **kwargs)
        self._host = host
        self._path = path
        self._content = content.encode()
        self._mode = mode
        self._owner = owner
        self._validate = validate
        self._then = then

    def _probe(self):
        files: FileState = self._host.files
        if not files.exists(self._path):
            return State.ABSENT
        if files.matches(self._path, self._content, self._mode, self._owner):
            return State.PRESENT
        return State.MISMATCHED

    def _create(self):
        files: FileState = self._host.files
        if self._validate is None:
            files.write(self._path, self._content, self._mode, self._owner)
        else:
            aside = self._path + '.new'
            files.write(aside, self._content, self._mode, self._owner)
            command = [arg.format(path=aside) for arg in self._validate]
            r = self._host.shell.run(command, check=False)
            if r.returncode != 0:
                files.remove(aside)
                raise ConvergeError(
                    f"{self.id}: {self._path}: rejected by {command[0]}: "
                    f"{r.stderr.decode(errors='backslashreplace') or r.stdout.decode(errors='backslashreplace')}")
            self._host.shell.run(['mv', '-f', aside, self._path])
        for command in self._then:
            self._host.shell.run(command)


class LineInFile(HostResource):
    """A line that must be present in a file that others edit too."""

    def __init__(
            self,
            resource_id,
            files: FileState,
            path: str,
            line: str,
            mode: int = 0o644,
            owner: str = 'root',
            **kwargs):
        kwargs.setdefault('description', f"{path} has {line!r}")
        super().__init__(resource_id, **kwargs)
        self._files = files
        self._path = path
        self._line = line
        self._mode = mode
        self._owner = owner

    def _probe(self):
        content = self._files.read(self._path)
        if content is None:
            return State.ABSENT
        if self._line in content.decode(errors='surrogateescape').splitlines():
            return State.PRESENT
        return State.MISMATCHED

    def _create(self):
        content = (self._files.read(self._path) or b'').decode(errors='surrogateescape')
        if self._line in content.splitlines():
            return
        if content and not content.endswith('\n'):
            content += '\n'
        content += self._line + '\n'
        meta = self._files.meta(self._path)
        if meta is None:
            self._files.write(self._path, content.encode(errors='surrogateescape'), self._mode, self._owner)
        else:
            self._files.write(self._path, content.encode(errors='surrogateescape'), meta.mode, meta.owner)


class ServiceRunning(HostResource):

    def __init__(self, resource_id, services, name: str, **kwargs):
        kwargs.setdefault('description', f"{name} is enabled and active")
        super().__init__(resource_id, **kwargs)
        self._services = services
        self._name = name

    def _probe(self):
        if not self._services.exists(self._name):
            return State.ABSENT
        if self._services.is_active(self._name) and self._services.is_enabled(self._name):
            return State.PRESENT
        return State.MISMATCHED

    def _create(self):
        self._services.enable(self._name)

    def _repair(self):
        if not self._services.is_enabled(self._name):
            self._services.enable(self._name)
        if not self._services.is_active(self._name):
            self._services.restart(self._name)


class ServicesDisabled(HostResource):
    """Units that must not run. Units that are not installed are fine."""

    def __init__(self, resource_id, services, names: Sequence[str], **kwargs):
        kwargs.setdefault('description', f"disabled: {', '.join(names)}")
        super().__init__(resource_id, **kwargs)
        self._services = services
        self._names = list(names)

    def _running(self):
        result = []
        for name in self._names:
            if not self._services.exists(name):
                continue
            if self._services.is_active(name) or self._services.is_enabled(name):
                result.append(name)
        return result

    def _probe(self):
        if self._running():
            return State.MISMATCHED
        return State.PRESENT

    def _create(self):
        for name in self._running():
            self._services.disable(name)


class UserExists(HostResource):

    def __init__(self, resource_id, users, name: str, **kwargs):
        kwargs.setdefault('description', f"user {name} exists")
        super().__init__(resource_id, **kwargs)
        self._users = users
        self._name = name

    def _probe(self):
        return State.PRESENT if self._users.exists(self._name) else State.ABSENT

    def _create(self):
        self._users.add(self._name)


class UserInGroup(HostResource):

    def __init__(self, resource_id, users, name: str, group_name: str, **kwargs):
        kwargs.setdefault('description', f"{name} is in group {group_name}")
        super().__init__(resource_id, **kwargs)
        self._users = users
        self._name = name
        self._group_name = group_name

    def _probe(self):
        if not self._users.exists(self._name):
            return State.ABSENT
        if self._group_name in self._users.groups(self._name):
            return State.PRESENT
        return State.MISMATCHED

    def _create(self):
        self._users.add_to_group(self._name, self._group_name)


class ImageBuilt(HostResource):

    def __init__(self, resource_id, images, tag: str, dockerfile: str, **kwargs):
        kwargs.setdefault('description', f"image {tag} exists")
        super().__init__(resource_id, **kwargs)
        self._images = images
        self._tag = tag
        self._dockerfile = dockerfile

    def _probe(self):
        if not self._images.is_available():
            raise ProbeError(f"{self.id}: container runtime is not available")
        return State.PRESENT if self._images.image_exists(self._tag) else State.ABSENT

    def _create(self):
        self._images.build(self._tag, self._dockerfile)


class JsonSetting(HostResource):
    """A value at a key path of a JSON file owned by the application.

    The file itself is created by the application; only the key is managed.
    """

    def __init__(
            self,
            resource_id,
            files: FileState,
            path: str,
            key_path: Sequence[str],
            value: Any,
            owner: str,
            is_satisfied: Optional[Callable[[Any], bool]] = None,
            **kwargs):
        kwargs.setdefault('description', f"{'.'.join(key_path)} is set in {path}")
        super().__init__(resource_id, **kwargs)
        self._files = files
        self._path = path
        self._key_path = list(key_path)
        self._value = value
        self._owner = owner
        if is_satisfied is None:
            self._is_satisfied = lambda current: current == value
        else:
            self._is_satisfied = is_satisfied

    def _load(self):
        content = self._files.read(self._path)
        if content is None:
            return None
        try:
            return json.loads(content)
        except ValueError as e:
            raise ProbeError(f"{self.id}: {self._path}: not a JSON: {e}")

    def _probe(self):
        data = self._load()
        if data is None:
            return State.ABSENT
        current = data
        for key in self._key_path:
            if not isinstance(current, dict) or key not in current:
                return State.MISMATCHED
            current = current[key]
        return State.PRESENT if self._is_satisfied(current) else State.MISMATCHED

    def _create(self):
        raise ConvergeError(f"{self.id}: {self._path} does not exist yet; it is made by the application")

    def _repair(self):
        data = self._load()
        if not isinstance(data, dict):
            raise ConvergeError(f"{self.id}: {self._path}: top level is not an object; refuse to overwrite")
        node = data
        for key in self._key_path[:-1]:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        node[self._key_path[-1]] = self._value
        meta = self._files.meta(self._path)
        mode = meta.mode if meta is not None else 0o600
        self._files.write(self._path, (json.dumps(data, indent=2) + '\n').encode(), mode, self._owner)


class ServiceFresh(HostResource):
    """A unit that has been (re)started after its watched files last changed.

    Restarting is how configuration changes of the application reach it.
    """

    def __init__(
            self,
            resource_id,
            host,
            name: str,
            watched: Sequence[str],
            restart: Callable[[], None],
            install_hint: str = '',
            **kwargs):
        kwargs.setdefault('description', f"{name} is active since its configuration changed")
        super().__init__(resource_id, **kwargs)
        self._host = host
        self._name = name
        self._watched = list(watched)
        self._restart = restart
        self._install_hint = install_hint

    def _probe(self):
        services = self._host.services
        if not services.exists(self._name):
            return State.ABSENT
        if not services.is_active(self._name):
            return State.MISMATCHED
        started_at = services.active_since(self._name)
        changed_at = [self._host.files.mtime(path) for path in self._watched]
        changed_at = [t for t in changed_at if t is not None]
        if started_at is not None and changed_at and max(changed_at) > started_at:
            _logger.info("%s: %s changed after start", self.id, self._name)
            return State.MISMATCHED
        return State.PRESENT

    def _create(self):
        message = f"{self.id}: unit {self._name} is not installed"
        if self._install_hint:
            message += f"; {self._install_hint}"
        raise ConvergeError(message)

    def _repair(self):
        self._restart()


_logger = logging.getLogger(__name__)
