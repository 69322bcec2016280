# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from typing import Mapping
from typing import NamedTuple
from typing import Optional


class Settings(NamedTuple):
    """Everything the catalog needs to know about the deployment.

    Built once at the entrypoint. Nothing below it reads
    the environment or the configuration files.
    """

    username: str
    ssh_pubkey: Optional[str]
    ssh_port: int
    node_major: int
    swap_file: str
    swap_size: str
    swappiness: int
    app_name: str
    app_package: str
    app_service: str
    sandbox_image: str
    enable_sandbox: bool
    backup_dir: Optional[str]
    backup_retention_days: int
    health_max_restarts: int
    health_log_file: Optional[str]
    service_timeout_sec: float

    def home(self) -> str:
        return f'/home/{self.username}'

    def app_dir(self) -> str:
        return f'{self.home()}/.{self.app_name}'

    def app_config(self) -> str:
        return f'{self.app_dir()}/{self.app_name}.json'

    def health_log(self) -> str:
        return self.health_log_file or f'{self.app_dir()}/logs/healthcheck.log'

    def backups(self) -> str:
        return self.backup_dir or f'{self.home()}/backups/{self.app_name}'


def make_settings(config: Mapping[str, str], environ: Mapping[str, str]) -> Settings:
    """Combine configuration with the few overrides taken from the environment.

    >>> s = make_settings({'username': 'bot', 'node_major': '20'}, {'ENABLE_SANDBOX': 'Yes'})
    >>> s.username, s.node_major, s.enable_sandbox, s.ssh_pubkey
    ('bot', 20, True, None)
    >>> s.app_config()
    '/home/bot/.openclaw/openclaw.json'
    >>> make_settings({}, {'SSH_PUBKEY': ' ssh-ed25519 AAAA me '}).ssh_pubkey
    'ssh-ed25519 AAAA me'
    """

    def get(key, default):
        return config.get(key) or default

    pubkey = environ.get('SSH_PUBKEY') or config.get('ssh_pubkey') or ''
    settings = Settings(
        username=get('username', 'clawdbot'),
        ssh_pubkey=pubkey.strip() or None,
        ssh_port=int(get('ssh_port', 22)),
        node_major=int(get('node_major', 22)),
        swap_file=get('swap_file', '/swapfile'),
        swap_size=get('swap_size', '2G'),
        swappiness=int(get('swappiness', 10)),
        app_name=get('app_name', 'openclaw'),
        app_package=get('app_package', 'openclaw'),
        app_service=get('app_service', 'openclaw'),
        sandbox_image=get('sandbox_image', 'openclaw-sandbox:bookworm-slim'),
        enable_sandbox=environ.get('ENABLE_SANDBOX', '').lower() in ('y', 'yes'),
        backup_dir=environ.get('BACKUP_DIR') or config.get('backup_dir') or None,
        backup_retention_days=int(get('backup_retention_days', 7)),
        health_max_restarts=int(get('health_max_restarts', 3)),
        health_log_file=config.get('health_log_file') or None,
        service_timeout_sec=float(get('service_timeout_sec', 30)),
        )
    _logger.debug("Settings: %r", settings)
    return settings


_logger = logging.getLogger(__name__)
