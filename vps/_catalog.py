# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Everything installed and configured on the server.

Nothing may be changed on the server by hand. If it's needed, it's here.

Configuration must be as non-invasive as possible.
Alter the defaults as little as possible: whole files are placed
in *.d directories where the software supports them.
"""
import functools
import logging
from typing import List

from convergence import APPLICATION
from convergence import Resource
from convergence import SANDBOX
from convergence import SYSTEM
from os_access import PosixHost
from os_access import wait_for_truthy
from vps._application import ApplicationInstalled
from vps._application import ChromeBrowser
from vps._application import NodeRuntime
from vps._kinds import FileContent
from vps._kinds import ImageBuilt
from vps._kinds import JsonSetting
from vps._kinds import LineInFile
from vps._kinds import PackagesInstalled
from vps._kinds import ServiceFresh
from vps._kinds import ServiceRunning
from vps._kinds import ServicesDisabled
from vps._kinds import UserExists
from vps._kinds import UserInGroup
from vps._sandbox import DockerRepository
from vps._settings import Settings
from vps._system import AuthorizedKey
from vps._system import SshHardening
from vps._system import SwapActive
from vps._system import SystemUpgraded
from vps._system import UfwFirewall

# Least privilege: no blanket NOPASSWD:ALL.
_SUDOERS = '''\
# Managed by vps_converge; scoped sudo for {user}.
Cmnd_Alias APP_SVC = /usr/bin/systemctl, /usr/sbin/ufw, /usr/bin/fail2ban-client, \\
    /usr/bin/journalctl, /usr/sbin/reboot, /usr/sbin/sysctl, \\
    /usr/sbin/sshd, /usr/bin/dpkg-reconfigure
Cmnd_Alias APP_PKG = /usr/bin/apt-get, /usr/bin/apt, /usr/bin/dpkg, \\
    /usr/bin/wget, /usr/bin/curl
Cmnd_Alias APP_DOCKER = /usr/bin/docker, /usr/bin/dockerd, \\
    /usr/sbin/usermod, /usr/sbin/adduser
Cmnd_Alias APP_FS = /usr/bin/tee, /usr/bin/install, /usr/bin/mkdir, \\
    /usr/bin/chmod, /usr/bin/chown, /usr/bin/rm, /usr/bin/sed, /usr/bin/cat, \\
    /usr/bin/mv, /usr/bin/cp, /usr/bin/gpg
{user} ALL=(ALL) NOPASSWD: APP_SVC, APP_PKG, APP_DOCKER, APP_FS
'''

_SSHD_HARDENING = '''\
PermitRootLogin no
PasswordAuthentication no
PubkeyAuthentication yes
ChallengeResponseAuthentication no
UsePAM yes
X11Forwarding no
MaxAuthTries 3
ClientAliveInterval 300
ClientAliveCountMax 2
'''

_FAIL2BAN_JAIL = '''\
[sshd]
enabled = true
port = {port}
filter = sshd
logpath = /var/log/auth.log
maxretry = 3
bantime = 3600
findtime = 600
'''

_KERNEL_HARDENING = '''\
net.ipv4.conf.all.send_redirects = 0
net.ipv4.conf.default.send_redirects = 0
net.ipv4.conf.all.accept_redirects = 0
net.ipv4.conf.default.accept_redirects = 0
net.ipv6.conf.all.accept_redirects = 0
net.ipv6.conf.default.accept_redirects = 0
net.ipv4.icmp_echo_ignore_broadcasts = 1
net.ipv4.tcp_syncookies = 1
net.ipv4.ip_forward = 0
net.ipv4.conf.all.log_martians = 1
net.ipv4.conf.default.log_martians = 1
'''

# The same as `dpkg-reconfigure -plow unattended-upgrades` writes.
_AUTO_UPGRADES = '''\
APT::Periodic::Update-Package-Lists "1";
APT::Periodic::Unattended-Upgrade "1";
'''

_JOURNALD_LIMITS = '''\
[Journal]
SystemMaxUse=500M
SystemMaxFileSize=50M
MaxRetentionSec=30day
'''

_LOGROTATE = '''\
{app_dir}/logs/*.log {{
    daily
    missingok
    rotate 14
    compress
    delaycompress
    notifempty
    create 0640 {user} {user}
    sharedscripts
    postrotate
        systemctl reload {service} 2>/dev/null || true
    endscript
}}
'''

_UNIT_HARDENING = '''\
[Service]
NoNewPrivileges=yes
ProtectSystem=strict
ProtectHome=read-only
ReadWritePaths={app_dir} {home}/.npm-global
PrivateTmp=yes
'''

# Agent tools of non-main sessions run in containers of this image.
_SANDBOX_DOCKERFILE = '''\
FROM debian:bookworm-slim@sha256:ad86386827b083b3d71571f8e544a9cdd1d388b7c2d5efa99743c1a3b7b19eb4

ENV DEBIAN_FRONTEND=noninteractive

RUN apt-get update \\
  && apt-get install -y --no-install-recommends \\
    bash \\
    ca-certificates \\
    curl \\
    git \\
    jq \\
    python3 \\
    ripgrep \\
  && rm -rf /var/lib/apt/lists/*

RUN useradd --create-home --shell /bin/bash sandbox
USER sandbox
WORKDIR /home/sandbox

CMD ["sleep", "infinity"]
'''

SANDBOX_SETTINGS = {
    'mode': 'non-main',
    'scope': 'session',
    'workspaceAccess': 'rw',
    }

UNNEEDED_SERVICES = ['snap.cups.cupsd', 'snap.cups.cups-browsed']

DOCKER_PACKAGES = ['docker-ce', 'docker-ce-cli', 'containerd.io', 'docker-buildx-plugin']


def sandbox_enabled(value) -> bool:
    """Any mode but "off" counts as enabled; a chosen mode is not overridden.

    >>> sandbox_enabled({'mode': 'all'}), sandbox_enabled({'mode': 'off'}), sandbox_enabled({})
    (True, False, False)
    """
    return isinstance(value, dict) and value.get('mode', 'off') != 'off'


def restart_gateway(host: PosixHost, settings: Settings):
    """Restart with the application's own command; fall back to systemd."""
    r = host.app.gateway_restart()
    if r.returncode != 0:
        _logger.info("Gateway restart by %s failed, restart unit", settings.app_name)
        host.services.restart(settings.app_service)
        return
    wait_for_truthy(
        lambda: host.services.is_active(settings.app_service),
        description=f"{settings.app_service} is active",
        timeout_sec=settings.service_timeout_sec,
        )


def build_resources(settings: Settings, host: PosixHost) -> List[Resource]:
    user = settings.username
    home = settings.home()
    resources = [
        UserExists('user', host.users, user, group=SYSTEM),
        FileContent(
            'sudoers', host, f'/etc/sudoers.d/{user}', _SUDOERS.format(user=user),
            mode=0o440,
            validate=['visudo', '-cf', '{path}'],
            group=SYSTEM, depends_on=['user'],
            description=f"{user} has scoped passwordless sudo",
            ),
        ]
    if settings.ssh_pubkey:
        resources.append(AuthorizedKey(
            'authorized-key', host.files, user, home, settings.ssh_pubkey,
            group=SYSTEM, depends_on=['user']))
        hardening_after = ['authorized-key']
    else:
        _logger.warning(
            "No SSH public key configured; make sure %s can log in "
            "before password authentication is disabled", user)
        hardening_after = []
    resources.extend([
        SshHardening(
            'ssh-hardening', host,
            '/etc/ssh/sshd_config.d/hardening.conf', _SSHD_HARDENING,
            {'PermitRootLogin': 'no', 'PasswordAuthentication': 'no'},
            obsolete=['/etc/ssh/sshd_config.d/50-cloud-init.conf'],
            group=SYSTEM, depends_on=hardening_after,
            ),
        PackagesInstalled('firewall-package', host.packages, ['ufw'], group=SYSTEM),
        UfwFirewall(
            'firewall', host.shell, [(f'{settings.ssh_port}/tcp', 'SSH')],
            group=SYSTEM, depends_on=['firewall-package'],
            ),
        PackagesInstalled('fail2ban-package', host.packages, ['fail2ban'], group=SYSTEM),
        FileContent(
            'fail2ban-jail', host, '/etc/fail2ban/jail.local',
            _FAIL2BAN_JAIL.format(port=settings.ssh_port),
            then=[['systemctl', 'try-restart', 'fail2ban']],
            group=SYSTEM, depends_on=['fail2ban-package'],
            ),
        ServiceRunning('fail2ban', host.services, 'fail2ban', group=SYSTEM, depends_on=['fail2ban-jail']),
        ServicesDisabled('unneeded-services', host.services, UNNEEDED_SERVICES, group=SYSTEM),
        FileContent(
            'kernel-hardening', host, '/etc/sysctl.d/99-hardening.conf', _KERNEL_HARDENING,
            then=[['sysctl', '--system']],
            group=SYSTEM,
            ),
        SystemUpgraded('system-upgrade', host.packages, group=SYSTEM),
        PackagesInstalled(
            'base-packages', host.packages, ['curl', 'git', 'build-essential'],
            group=SYSTEM,
            ),
        PackagesInstalled(
            'auto-upgrades-package', host.packages, ['unattended-upgrades'],
            group=SYSTEM,
            ),
        FileContent(
            'auto-upgrades', host, '/etc/apt/apt.conf.d/20auto-upgrades', _AUTO_UPGRADES,
            group=SYSTEM, depends_on=['auto-upgrades-package'],
            description="unattended upgrades enabled",
            ),
        SwapActive('swap', host, settings.swap_file, settings.swap_size, group=SYSTEM),
        FileContent(
            'swappiness', host, '/etc/sysctl.d/99-swap.conf',
            f'vm.swappiness={settings.swappiness}\n',
            then=[['sysctl', '-p', '/etc/sysctl.d/99-swap.conf']],
            group=SYSTEM, depends_on=['swap'],
            ),
        FileContent(
            'journald-limits', host, '/etc/systemd/journald.conf.d/size-limit.conf',
            _JOURNALD_LIMITS,
            then=[['systemctl', 'restart', 'systemd-journald']],
            group=SYSTEM,
            ),
        FileContent(
            'logrotate', host, f'/etc/logrotate.d/{settings.app_name}',
            _LOGROTATE.format(app_dir=settings.app_dir(), user=user, service=settings.app_service),
            group=SYSTEM,
            ),
        NodeRuntime('nodejs', host, settings.node_major, group=APPLICATION),
        LineInFile(
            'npm-prefix', host.files, f'{home}/.npmrc', f'prefix={home}/.npm-global',
            owner=user, group=APPLICATION, depends_on=['user'],
            ),
        LineInFile(
            'npm-path', host.files, f'{home}/.bashrc',
            'export PATH="$HOME/.npm-global/bin:$PATH"',
            owner=user, group=APPLICATION, depends_on=['user'],
            ),
        ApplicationInstalled(
            'application', host, settings.app_package, user,
            group=APPLICATION, depends_on=['nodejs', 'npm-prefix', 'npm-path'],
            ),
        ChromeBrowser('chrome', host, group=APPLICATION),
        DockerRepository('docker-repository', host, group=SANDBOX),
        PackagesInstalled(
            'docker', host.packages, DOCKER_PACKAGES,
            group=SANDBOX, depends_on=['docker-repository'],
            ),
        ServiceRunning('docker-service', host.services, 'docker', group=SANDBOX, depends_on=['docker']),
        UserInGroup(
            'docker-group', host.users, user, 'docker',
            group=SANDBOX, depends_on=['docker', 'user'],
            ),
        ImageBuilt(
            'sandbox-image', host.images, settings.sandbox_image, _SANDBOX_DOCKERFILE,
            group=SANDBOX, depends_on=['docker-service'],
            ),
        JsonSetting(
            'sandbox-config', host.files, settings.app_config(),
            ['agents', 'defaults', 'sandbox'], SANDBOX_SETTINGS, owner=user,
            is_satisfied=sandbox_enabled,
            group=SANDBOX, depends_on=['sandbox-image'],
            ),
        ])
    restart = functools.partial(restart_gateway, host, settings)
    watched = [
        settings.app_config(),
        f'{home}/.npm-global/lib/node_modules/{settings.app_package}/package.json',
        ]
    hint = f"run `{settings.app_name} onboard --install-daemon` as {user}"
    resources.extend([
        ServiceFresh(
            'gateway', host, settings.app_service, watched, restart, hint,
            group=APPLICATION, depends_on=['application'],
            ),
        FileContent(
            'unit-hardening', host, f'/etc/systemd/system/{settings.app_service}.service.d/hardening.conf',
            _UNIT_HARDENING.format(app_dir=settings.app_dir(), home=home),
            then=[['systemctl', 'daemon-reload'], ['systemctl', 'try-restart', settings.app_service]],
            group=APPLICATION, depends_on=['gateway'],
            description=f"{settings.app_service} runs with no new privileges, read-only system",
            ),
        ServiceFresh(
            'sandbox-gateway', host, settings.app_service, watched, restart, hint,
            group=SANDBOX, depends_on=['sandbox-config', 'docker-group'],
            ),
        ])
    return resources


_logger = logging.getLogger(__name__)
