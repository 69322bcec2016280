# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import json
import logging
from typing import Mapping

from convergence import APPLICATION
from convergence import CheckRegistry
from convergence import SANDBOX
from convergence import SYSTEM
from os_access import PosixHost
from vps._catalog import sandbox_enabled
from vps._settings import Settings
from vps._system import parse_ufw_status


def parse_sshd_effective(text: str) -> Mapping[str, str]:
    """Parse `sshd -T`: lowercase keywords, first value wins.

    >>> c = parse_sshd_effective('port 22\\npermitrootlogin no\\nport 2222\\n')
    >>> c['port'], c['permitrootlogin']
    ('22', 'no')
    """
    result = {}
    for line in text.splitlines():
        [key, _, value] = line.strip().partition(' ')
        if key:
            result.setdefault(key.lower(), value.strip())
    return result


def disk_used_percent(df_output: str) -> int:
    """Parse `df --output=pcent`.

    >>> disk_used_percent('Use%\\n 45%\\n')
    45
    """
    return int(df_output.strip().splitlines()[-1].strip().rstrip('%'))


def memory_used_percent(meminfo: str) -> float:
    """Share of memory that is not available to new processes.

    >>> memory_used_percent('MemTotal: 1000 kB\\nMemFree: 100 kB\\nMemAvailable: 250 kB\\n')
    75.0
    """
    values = {}
    for line in meminfo.splitlines():
        [key, _, value] = line.partition(':')
        if value:
            values[key.strip()] = int(value.split()[0])
    total = values['MemTotal']
    return (total - values['MemAvailable']) / total * 100


class _HostChecks:
    """Predicates over one host. Each one asks the machine anew."""

    def __init__(self, settings: Settings, host: PosixHost):
        self._settings = settings
        self._host = host

    def _sshd(self, key, expected):
        config = parse_sshd_effective(self._host.shell.output(['sshd', '-T']))
        return config.get(key) == expected

    def root_login_disabled(self):
        return self._sshd('permitrootlogin', 'no')

    def password_auth_disabled(self):
        return self._sshd('passwordauthentication', 'no')

    def pubkey_auth_enabled(self):
        return self._sshd('pubkeyauthentication', 'yes')

    def _ufw(self):
        return parse_ufw_status(self._host.shell.output(['ufw', 'status', 'verbose']))

    def firewall_active(self):
        return self._ufw().active

    def ssh_allowed(self):
        port = f'{self._settings.ssh_port}/tcp'
        return any(rule.startswith(port) for rule in self._ufw().allowed)

    def fail2ban_running(self):
        return self._host.services.is_active('fail2ban')

    def ssh_jail_active(self):
        return self._host.shell.succeeds(['fail2ban-client', 'status', 'sshd'])

    def syn_cookies(self):
        return self._host.shell.output(['sysctl', '-n', 'net.ipv4.tcp_syncookies']) == '1'

    def swap_active(self):
        return bool(self._host.shell.output(['swapon', '--show', '--noheadings']))

    def journald_limited(self):
        return self._host.files.exists('/etc/systemd/journald.conf.d/size-limit.conf')

    def logrotate_configured(self):
        return self._host.files.exists(f'/etc/logrotate.d/{self._settings.app_name}')

    def disk_free(self):
        return disk_used_percent(self._host.shell.output(['df', '--output=pcent', '/'])) < 80

    def memory_available(self):
        meminfo = self._host.files.read('/proc/meminfo')
        return memory_used_percent(meminfo.decode()) < 90

    def no_pending_reboot(self):
        return not self._host.files.exists('/var/run/reboot-required')

    def auto_upgrades(self):
        return self._host.services.is_active('unattended-upgrades')

    def sudo_scoped(self):
        content = self._host.files.read(f'/etc/sudoers.d/{self._settings.username}')
        return content is None or b'NOPASSWD:ALL' not in content

    def node_installed(self):
        r = self._host.shell.run(['node', '--version'], check=False)
        return r.returncode == 0 and r.stdout.decode().startswith(f'v{self._settings.node_major}.')

    def app_installed(self):
        return self._host.app.version() is not None

    def chrome_installed(self):
        return self._host.command_exists('google-chrome')

    def app_running(self):
        return self._host.services.is_active(self._settings.app_service)

    def app_doctor(self):
        return self._host.app.doctor().returncode == 0

    def app_health(self):
        return self._host.app.health().returncode == 0

    def no_new_privileges(self):
        return self._host.services.show(self._settings.app_service, 'NoNewPrivileges') == 'yes'

    def protect_system(self):
        return self._host.services.show(self._settings.app_service, 'ProtectSystem') in ('strict', 'full')

    def docker_installed(self):
        return self._host.command_exists('docker')

    def docker_running(self):
        return self._host.services.is_active('docker')

    def docker_group(self):
        return 'docker' in self._host.users.groups(self._settings.username)

    def sandbox_image(self):
        return self._host.images.image_exists(self._settings.sandbox_image)

    def sandbox_configured(self):
        content = self._host.files.read(self._settings.app_config())
        if content is None:
            return False
        sandbox = json.loads(content).get('agents', {}).get('defaults', {}).get('sandbox')
        return sandbox_enabled(sandbox)


def build_checks(settings: Settings, host: PosixHost) -> CheckRegistry:
    c = _HostChecks(settings, host)
    app = settings.app_name.capitalize()
    registry = CheckRegistry()
    for name, predicate in [
            ("SSH: root login disabled", c.root_login_disabled),
            ("SSH: password auth disabled", c.password_auth_disabled),
            ("SSH: pubkey auth enabled", c.pubkey_auth_enabled),
            ("Firewall: UFW active", c.firewall_active),
            ("Firewall: SSH allowed", c.ssh_allowed),
            ("Fail2ban: running", c.fail2ban_running),
            ("Fail2ban: SSH jail active", c.ssh_jail_active),
            ("Kernel: SYN cookies enabled", c.syn_cookies),
            ("Swap: active", c.swap_active),
            ("Journald: size limited", c.journald_limited),
            (f"Logrotate: {app} config", c.logrotate_configured),
            ("Disk: >20% free", c.disk_free),
            ("Memory: <90% used", c.memory_available),
            ("No pending reboot", c.no_pending_reboot),
            ("Auto-updates: enabled", c.auto_upgrades),
            ("Sudo: scoped (no NOPASSWD:ALL)", c.sudo_scoped),
            ]:
        registry.register(name, predicate, group=SYSTEM)
    for name, predicate in [
            ("Node.js: installed", c.node_installed),
            (f"{app}: installed", c.app_installed),
            ("Chrome: installed", c.chrome_installed),
            (f"{app}: running", c.app_running),
            (f"{app}: health", c.app_health),
            ]:
        registry.register(name, predicate, group=APPLICATION)
    # Reported, not counted: doctor complains about optional setup;
    # the hardening drop-in takes effect only after onboarding made the unit.
    for name, predicate in [
            (f"{app}: doctor", c.app_doctor),
            ("Systemd: NoNewPrivileges", c.no_new_privileges),
            ("Systemd: ProtectSystem", c.protect_system),
            ]:
        registry.register(name, predicate, group=APPLICATION, warning=True)
    for name, predicate in [
            ("Docker: installed", c.docker_installed),
            ("Docker: running", c.docker_running),
            (f"Docker group: {settings.username}", c.docker_group),
            ("Sandbox image: exists", c.sandbox_image),
            ("Config: sandbox enabled", c.sandbox_configured),
            ]:
        registry.register(name, predicate, group=SANDBOX)
    _logger.debug("Registered %d checks", len(registry))
    return registry


_logger = logging.getLogger(__name__)
