# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest
from subprocess import CalledProcessError
from subprocess import TimeoutExpired

import paramiko
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives.asymmetric import rsa

from doubles.fake_shell import FakeShell
from os_access import Sudo
from os_access._ssh_shell import load_private_key
from os_access.local_shell import local_shell


class TestLocalShell(unittest.TestCase):

    def test_output(self):
        self.assertEqual(local_shell.output(['echo', 'converged']), 'converged')

    def test_script(self):
        r = local_shell.run('exit 3', check=False)
        self.assertEqual(r.returncode, 3)

    def test_input(self):
        r = local_shell.run(['cat'], input=b'line\n')
        self.assertEqual(r.stdout, b'line\n')

    def test_missing_executable(self):
        self.assertFalse(local_shell.succeeds(['nonexistent-executable-for-test']))
        with self.assertRaises(CalledProcessError) as context:
            local_shell.run(['nonexistent-executable-for-test'])
        self.assertIn('127', str(context.exception))

    def test_timeout(self):
        with self.assertRaises(TimeoutExpired):
            local_shell.run(['sleep', '10'], timeout_sec=0.2)


class TestSudo(unittest.TestCase):

    def test_input_passed(self):
        shell = FakeShell()
        Sudo(shell).run(['tee', '/etc/motd'], input=b'hello\n')
        self.assertEqual(shell.inputs, {'sudo -n tee /etc/motd': b'hello\n'})

    def test_failure_raised_by_outer_shell(self):
        shell = FakeShell()
        shell.on('sudo -n', returncode=1, stderr='sudo: a password is required')
        with self.assertRaises(CalledProcessError):
            Sudo(shell).run(['ufw', 'status'])


class TestLoadPrivateKey(unittest.TestCase):

    def test_rsa_pem(self):
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        data = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
            )
        self.assertIsInstance(load_private_key(data), paramiko.RSAKey)

    def test_ecdsa_openssh(self):
        key = ec.generate_private_key(ec.SECP256R1())
        data = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.OpenSSH,
            serialization.NoEncryption(),
            )
        self.assertIsInstance(load_private_key(data), paramiko.ECDSAKey)

    def test_ed25519_openssh(self):
        key = ed25519.Ed25519PrivateKey.generate()
        data = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.OpenSSH,
            serialization.NoEncryption(),
            )
        loaded = load_private_key(data)
        self.assertIsInstance(loaded, paramiko.Ed25519Key)
        public = key.public_key().public_bytes(
            serialization.Encoding.OpenSSH, serialization.PublicFormat.OpenSSH)
        self.assertEqual(f'{loaded.get_name()} {loaded.get_base64()}', public.decode())


if __name__ == '__main__':
    unittest.main()
