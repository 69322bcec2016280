# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest

from doubles.fake_shell import FakeShell
from os_access import ApplicationCli
from os_access import DockerImages
from os_access import ImageBuildError


class TestApplicationCli(unittest.TestCase):

    def test_version(self):
        shell = FakeShell()
        shell.on('openclaw --version', stdout='2026.3.1\n')
        self.assertEqual(ApplicationCli(shell, 'openclaw').version(), '2026.3.1')

    def test_not_installed(self):
        shell = FakeShell()
        shell.on('openclaw', returncode=127)
        cli = ApplicationCli(shell, 'openclaw')
        self.assertIsNone(cli.version())
        self.assertEqual(cli.health().returncode, 127)

    def test_as_user(self):
        shell = FakeShell()
        ApplicationCli(shell, 'openclaw', user='clawdbot').gateway_restart()
        [command] = shell.commands
        self.assertTrue(command.startswith('sudo -u clawdbot -H sh -c '), command)
        self.assertTrue(command.endswith(' sh openclaw gateway restart'), command)


class TestDockerImages(unittest.TestCase):

    def test_build_sends_dockerfile(self):
        shell = FakeShell()
        DockerImages(shell).build('sandbox:slim', 'FROM debian\n')
        [command] = shell.commands
        self.assertEqual(command, 'docker build --tag sandbox:slim -')
        self.assertEqual(shell.inputs[command], b'FROM debian\n')

    def test_build_fails(self):
        shell = FakeShell()
        shell.on('docker build', returncode=1, stderr='pull access denied')
        with self.assertRaises(ImageBuildError):
            DockerImages(shell).build('sandbox:slim', 'FROM nonexistent\n')

    def test_image_exists(self):
        shell = FakeShell()
        shell.on('docker image inspect', returncode=1)
        self.assertFalse(DockerImages(shell).image_exists('sandbox:slim'))


if __name__ == '__main__':
    unittest.main()
