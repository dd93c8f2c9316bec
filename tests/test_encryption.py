"""Test module for the encryption layer and secrets file handling."""

import os
import stat
import pytest
import yaml
from filepool import encryption
from filepool.encryption import PoolCipher, SecretsRecord
from filepool.filepool_exceptions import ConfigurationError


@pytest.fixture(name="cipher")
def init_cipher(tmp_path):
    """PoolCipher with random secrets and a small block size."""
    secrets = encryption.generate_secrets()
    return PoolCipher(secrets, block_size=100, tmp_dir=tmp_path.as_posix())


def test_generate_secrets_random():
    """Check that random secrets have the right scheme and lengths."""
    secrets = encryption.generate_secrets()
    assert secrets.scheme == "random"
    assert len(secrets.key) == 32
    assert len(secrets.iv) == 16
    assert secrets.salt is None


def test_generate_secrets_differ():
    """Check that two generated secrets differ."""
    assert encryption.generate_secrets().key != encryption.generate_secrets().key


def test_derive_key_deterministic():
    """Check that the derived key depends on passphrase and salt only."""
    salt = b"s" * 16
    assert encryption.derive_key("secret", salt, 1000) == encryption.derive_key(
        "secret", salt, 1000
    )
    assert encryption.derive_key("secret", salt, 1000) != encryption.derive_key(
        "other", salt, 1000
    )


def test_load_or_create_secrets_creates_file(secrets_file):
    """Check that a missing secrets file is created owner read-only."""
    secrets = encryption.load_or_create_secrets(secrets_file)
    assert os.path.exists(secrets_file)
    assert stat.S_IMODE(os.stat(secrets_file).st_mode) == 0o400
    with open(secrets_file, "r", encoding="utf-8") as secrets_yaml_file:
        secrets_yaml = yaml.safe_load(secrets_yaml_file)
    assert secrets_yaml["scheme"] == "random"
    assert isinstance(secrets, SecretsRecord)


def test_load_or_create_secrets_reuses_file(secrets_file):
    """Check that an existing secrets file is reused unchanged."""
    created = encryption.load_or_create_secrets(secrets_file)
    loaded = encryption.load_or_create_secrets(secrets_file)
    assert created.key == loaded.key
    assert created.iv == loaded.iv


def test_passphrase_scheme(secrets_file):
    """Check that the passphrase scheme stores no key and derives the same one."""
    created = encryption.load_or_create_secrets(secrets_file, "correct horse")
    with open(secrets_file, "r", encoding="utf-8") as secrets_yaml_file:
        secrets_yaml = yaml.safe_load(secrets_yaml_file)
    assert secrets_yaml["scheme"] == "pbkdf2"
    assert "key" not in secrets_yaml
    loaded = encryption.load_or_create_secrets(secrets_file, "correct horse")
    assert loaded.key == created.key
    assert loaded.iv == created.iv


def test_passphrase_required(secrets_file):
    """Check that a passphrase secrets file can't be opened without passphrase."""
    encryption.load_or_create_secrets(secrets_file, "correct horse")
    with pytest.raises(ConfigurationError):
        encryption.load_or_create_secrets(secrets_file)


def test_schemes_not_mixed(secrets_file):
    """Check that a random key secrets file rejects a passphrase."""
    encryption.load_or_create_secrets(secrets_file)
    with pytest.raises(ConfigurationError):
        encryption.load_or_create_secrets(secrets_file, "correct horse")


def test_corrupt_secrets_file(secrets_file):
    """Check that a corrupt secrets file raises ConfigurationError."""
    with open(secrets_file, "w", encoding="utf-8") as secrets_yaml_file:
        secrets_yaml_file.write("just some text")
    with pytest.raises(ConfigurationError):
        encryption.load_or_create_secrets(secrets_file)


def test_secrets_file_wrong_key_length(secrets_file):
    """Check that a key of the wrong length is rejected."""
    with open(secrets_file, "w", encoding="utf-8") as secrets_yaml_file:
        yaml.safe_dump(
            {"scheme": "random", "key": "c2hvcnQ=", "iv": "c2hvcnQ="}, secrets_yaml_file
        )
    with pytest.raises(ConfigurationError):
        encryption.read_secrets(secrets_file)


def test_unwritable_secrets_file(tmp_path):
    """Check that a secrets file that can't be created raises ConfigurationError."""
    secrets_file = (tmp_path / "missing_dir" / "secrets.yml").as_posix()
    with pytest.raises(ConfigurationError):
        encryption.load_or_create_secrets(secrets_file)


def test_secrets_file_never_world_readable(secrets_file, monkeypatch):
    """Check that the secrets file is owner-only while the key is written and
    owner read-only afterwards."""
    modes = []
    safe_dump = yaml.safe_dump

    def recording_safe_dump(*args, **kwargs):
        modes.append(stat.S_IMODE(os.stat(secrets_file).st_mode))
        return safe_dump(*args, **kwargs)

    monkeypatch.setattr(encryption.yaml, "safe_dump", recording_safe_dump)
    encryption.load_or_create_secrets(secrets_file)
    assert len(modes) == 1
    assert modes[0] & (stat.S_IRWXG | stat.S_IRWXO) == 0
    assert stat.S_IMODE(os.stat(secrets_file).st_mode) == 0o400


def test_write_secrets_existing_file(secrets_file):
    """Check that write_secrets never overwrites an existing secrets file."""
    encryption.load_or_create_secrets(secrets_file)
    with open(secrets_file, "rb") as secrets_yaml_file:
        content = secrets_yaml_file.read()
    with pytest.raises(FileExistsError):
        encryption.write_secrets(secrets_file, encryption.generate_secrets())
    with open(secrets_file, "rb") as secrets_yaml_file:
        assert secrets_yaml_file.read() == content


def test_load_or_create_secrets_created_concurrently(secrets_file, monkeypatch):
    """Check that a secrets file created by another process between the existence
    check and the write is reused."""
    created = encryption.load_or_create_secrets(secrets_file)
    exists = os.path.exists
    monkeypatch.setattr(
        encryption.os.path,
        "exists",
        lambda path: False if path == secrets_file else exists(path),
    )
    loaded = encryption.load_or_create_secrets(secrets_file)
    assert loaded.key == created.key
    assert loaded.iv == created.iv


def test_encrypt_decrypt_round_trip(cipher, files):
    """Check that decrypting an encrypted file yields the original bytes."""
    for path in files.values():
        encrypted = cipher.encrypt_to_temp(path)
        decrypted = cipher.decrypt_to_temp(encrypted)
        with open(path, "rb") as original, open(decrypted, "rb") as result:
            assert original.read() == result.read()


def test_encrypt_changes_content(cipher, files):
    """Check that ciphertext differs from plaintext and is block padded."""
    encrypted = cipher.encrypt_to_temp(files["b"])
    with open(files["b"], "rb") as original, open(encrypted, "rb") as result:
        plain_bytes = original.read()
        cipher_bytes = result.read()
    assert plain_bytes != cipher_bytes
    assert len(cipher_bytes) % 16 == 0
    assert len(cipher_bytes) > len(plain_bytes)


def test_encrypt_empty_file(cipher, files):
    """Check that an empty file encrypts to a single padding block."""
    encrypted = cipher.encrypt_to_temp(files["d"])
    assert os.path.getsize(encrypted) == 16


def test_temp_files_location(cipher, files, tmp_path):
    """Check that temp files are created in tmp_dir with their prefixes."""
    encrypted = cipher.encrypt_to_temp(files["a"])
    decrypted = cipher.decrypt_to_temp(encrypted)
    assert os.path.dirname(encrypted) == tmp_path.as_posix()
    assert os.path.basename(encrypted).startswith("FilePool-encrypt")
    assert os.path.basename(decrypted).startswith("FilePool-decrypt")


def test_decrypt_with_other_secrets(cipher, files, tmp_path):
    """Check that ciphertext is unreadable with other secrets."""
    encrypted = cipher.encrypt_to_temp(files["b"])
    other = PoolCipher(encryption.generate_secrets(), tmp_dir=tmp_path.as_posix())
    try:
        decrypted = other.decrypt_to_temp(encrypted)
    except ConfigurationError:
        return
    with open(files["b"], "rb") as original, open(decrypted, "rb") as result:
        assert original.read() != result.read()


def test_decrypt_truncated(cipher, files, tmp_path):
    """Check that a truncated entry raises ConfigurationError and leaves no temp file."""
    encrypted = cipher.encrypt_to_temp(files["b"])
    with open(encrypted, "rb+") as encrypted_file:
        encrypted_file.truncate(100)
    before = set(os.listdir(tmp_path))
    with pytest.raises(ConfigurationError):
        cipher.decrypt_to_temp(encrypted)
    assert set(os.listdir(tmp_path)) == before
