"""At-rest encryption for FilePool.

Entries in the secured tree are encrypted with AES-256 in CBC mode (PKCS7 padded).
The key and IV live in a secrets file (YAML) that is created on first use with
owner read-only permissions and reused for the lifetime of the pool. Losing the
secrets file makes every encrypted entry unrecoverable.

Two schemes can produce the key, recorded in the secrets file under `scheme`:

- ``random`` (default): a random 256-bit key.
- ``pbkdf2``: a key derived from a passphrase with PBKDF2-HMAC-SHA256 over a
  random salt. The passphrase is never written to disk.

A pool uses exactly one scheme; opening a secrets file with the other one fails.
"""

import base64
import logging
import os
from collections import namedtuple
from tempfile import NamedTemporaryFile
import yaml
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from filepool import filepool_config
from filepool.filepool_exceptions import ConfigurationError


class SecretsRecord(
    namedtuple("SecretsRecord", ["scheme", "key", "iv", "salt", "iterations"])
):
    """Key material of an encrypted pool.

    :param str scheme: How the key was produced, 'random' or 'pbkdf2'.
    :param bytes key: 256-bit AES key.
    :param bytes iv: 128-bit initialization vector.
    :param bytes salt: PBKDF2 salt ('pbkdf2' scheme only).
    :param int iterations: PBKDF2 iterations ('pbkdf2' scheme only).
    """

    def __new__(cls, scheme, key, iv, salt=None, iterations=None):
        return super(SecretsRecord, cls).__new__(cls, scheme, key, iv, salt, iterations)


def derive_key(passphrase, salt, iterations=filepool_config.KDF_ITERATIONS):
    """Derive a 256-bit key from a passphrase.

    :param str passphrase: User supplied passphrase.
    :param bytes salt: Random salt stored in the secrets file.
    :param int iterations: PBKDF2 iteration count.

    :return: The derived key.
    :rtype: bytes
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=filepool_config.KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def generate_secrets(passphrase=None):
    """Create fresh key material, derived from `passphrase` if one is given."""
    iv = os.urandom(filepool_config.IV_LENGTH)
    if passphrase is None:
        return SecretsRecord(
            filepool_config.SCHEME_RANDOM, os.urandom(filepool_config.KEY_LENGTH), iv
        )
    salt = os.urandom(filepool_config.SALT_LENGTH)
    iterations = filepool_config.KDF_ITERATIONS
    return SecretsRecord(
        filepool_config.SCHEME_PBKDF2,
        derive_key(passphrase, salt, iterations),
        iv,
        salt,
        iterations,
    )


def write_secrets(secrets_file, secrets):
    """Write a secrets record to `secrets_file` and make it owner read-only.

    The key of a 'pbkdf2' record is not written, only what is needed to derive it
    again.

    :param str secrets_file: Path of the secrets file.
    :param SecretsRecord secrets: Record to persist.

    :raises FileExistsError: If the secrets file already exists.
    """
    secrets_yaml = {
        "scheme": secrets.scheme,
        "iv": base64.b64encode(secrets.iv).decode("ascii"),
    }
    if secrets.scheme == filepool_config.SCHEME_PBKDF2:
        secrets_yaml["salt"] = base64.b64encode(secrets.salt).decode("ascii")
        secrets_yaml["iterations"] = secrets.iterations
    else:
        secrets_yaml["key"] = base64.b64encode(secrets.key).decode("ascii")

    # Exclusive, owner-only create
    secrets_fd = os.open(
        secrets_file,
        os.O_WRONLY | os.O_CREAT | os.O_EXCL,
        filepool_config.SECRETS_WRITE_MODE,
    )
    with os.fdopen(secrets_fd, "w", encoding="utf-8") as secrets_yaml_file:
        yaml.safe_dump(secrets_yaml, secrets_yaml_file, default_flow_style=False)
    os.chmod(secrets_file, filepool_config.SECRETS_FILE_MODE)
    logging.debug("FilePool - write_secrets: Secrets written to: %s", secrets_file)


def read_secrets(secrets_file, passphrase=None):
    """Load a secrets record from `secrets_file`.

    :param str secrets_file: Path of the secrets file.
    :param str passphrase: Passphrase, required for a 'pbkdf2' record.

    :raises ConfigurationError: If the file can't be read or parsed, or its scheme
        does not match whether a passphrase was given.

    :return: The loaded record.
    :rtype: SecretsRecord
    """
    try:
        with open(secrets_file, "r", encoding="utf-8") as secrets_yaml_file:
            secrets_yaml = yaml.safe_load(secrets_yaml_file)
        scheme = secrets_yaml["scheme"]
        iv = base64.b64decode(secrets_yaml["iv"], validate=True)
        if scheme == filepool_config.SCHEME_RANDOM:
            secrets = SecretsRecord(
                scheme, base64.b64decode(secrets_yaml["key"], validate=True), iv
            )
        elif scheme == filepool_config.SCHEME_PBKDF2:
            salt = base64.b64decode(secrets_yaml["salt"], validate=True)
            iterations = int(secrets_yaml["iterations"])
            secrets = SecretsRecord(scheme, None, iv, salt, iterations)
        else:
            raise ValueError(f"unknown scheme: {scheme}")
    # pylint: disable=W0718
    except Exception as err:
        exception_string = (
            f"FilePool - read_secrets: Could not load secrets from {secrets_file}: {err}"
        )
        logging.error(exception_string)
        raise ConfigurationError(exception_string, err) from err

    if (scheme == filepool_config.SCHEME_PBKDF2) != (passphrase is not None):
        exception_string = (
            f"FilePool - read_secrets: Secrets file {secrets_file} uses the '{scheme}'"
            + " scheme, which "
            + ("requires" if passphrase is None else "does not accept")
            + " a passphrase. Key schemes can't be mixed within a pool."
        )
        logging.error(exception_string)
        raise ConfigurationError(exception_string)
    if scheme == filepool_config.SCHEME_PBKDF2:
        secrets = secrets._replace(
            key=derive_key(passphrase, secrets.salt, secrets.iterations)
        )

    if (
        len(secrets.key) != filepool_config.KEY_LENGTH
        or len(secrets.iv) != filepool_config.IV_LENGTH
    ):
        exception_string = (
            f"FilePool - read_secrets: Secrets file {secrets_file} holds a key or IV"
            + " of the wrong length."
        )
        logging.error(exception_string)
        raise ConfigurationError(exception_string)
    return secrets


def load_or_create_secrets(secrets_file, passphrase=None):
    """Return the secrets stored at `secrets_file`, creating the file with new
    key material if it does not exist yet.

    :param str secrets_file: Path of the secrets file.
    :param str passphrase: Selects the 'pbkdf2' scheme (optional).

    :return: The pool's secrets.
    :rtype: SecretsRecord
    """
    if os.path.exists(secrets_file):
        logging.debug(
            "FilePool - load_or_create_secrets: Reusing secrets file: %s", secrets_file
        )
        return read_secrets(secrets_file, passphrase)

    logging.info(
        "FilePool - load_or_create_secrets: Secrets file not found, generating new"
        + " key material at: %s",
        secrets_file,
    )
    secrets = generate_secrets(passphrase)
    try:
        write_secrets(secrets_file, secrets)
    except FileExistsError:
        # Another process created the file first, its key wins
        logging.debug(
            "FilePool - load_or_create_secrets: Secrets file created concurrently,"
            + " reusing: %s",
            secrets_file,
        )
        return read_secrets(secrets_file, passphrase)
    except OSError as err:
        exception_string = (
            f"FilePool - load_or_create_secrets: Could not write secrets to"
            + f" {secrets_file}: {err}"
        )
        logging.error(exception_string)
        raise ConfigurationError(exception_string, err) from err
    return secrets


class PoolCipher:
    """Streams files through AES-256-CBC into temporary files.

    :param SecretsRecord secrets: Key material.
    :param int block_size: Bytes read per chunk.
    :param str tmp_dir: Directory for temporary files, system default if None.
    """

    def __init__(
        self, secrets, block_size=filepool_config.ENCRYPTION_BLOCK_SIZE, tmp_dir=None
    ):
        self.secrets = secrets
        self.block_size = block_size
        self.tmp_dir = tmp_dir

    def _cipher(self):
        return Cipher(algorithms.AES(self.secrets.key), modes.CBC(self.secrets.iv))

    def _stream(self, source, prefix, transform, finalize):
        tmp = NamedTemporaryFile(prefix=prefix, dir=self.tmp_dir, delete=False)
        try:
            with tmp as tmp_file, open(source, "rb") as source_file:
                while True:
                    data = source_file.read(self.block_size)
                    if not data:
                        break
                    tmp_file.write(transform(data))
                tmp_file.write(finalize())
        except BaseException:
            # Incomplete output is never handed out
            if os.path.exists(tmp.name):
                os.remove(tmp.name)
            raise
        return tmp.name

    def encrypt_to_temp(self, source):
        """Encrypt `source` into a new temporary file.

        :param str source: Path of the plain file.

        :return: Path of the temporary file holding the ciphertext.
        :rtype: str
        """
        encryptor = self._cipher().encryptor()
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        tmp_name = self._stream(
            source,
            filepool_config.ENCRYPT_TMP_PREFIX,
            lambda data: encryptor.update(padder.update(data)),
            lambda: encryptor.update(padder.finalize()) + encryptor.finalize(),
        )
        logging.debug(
            "PoolCipher - encrypt_to_temp: Encrypted %s to: %s", source, tmp_name
        )
        return tmp_name

    def decrypt_to_temp(self, source):
        """Decrypt `source` into a new temporary file. The caller is responsible
        for deleting it.

        :param str source: Path of the encrypted file.

        :raises ConfigurationError: If the content can't be decrypted with the
            pool's secrets.

        :return: Path of the temporary file holding the plain content.
        :rtype: str
        """
        decryptor = self._cipher().decryptor()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            tmp_name = self._stream(
                source,
                filepool_config.DECRYPT_TMP_PREFIX,
                lambda data: unpadder.update(decryptor.update(data)),
                lambda: unpadder.update(decryptor.finalize()) + unpadder.finalize(),
            )
        except ValueError as err:
            exception_string = (
                f"PoolCipher - decrypt_to_temp: Unable to decrypt {source}, the"
                + f" secrets do not match or the entry is corrupt: {err}"
            )
            logging.error(exception_string)
            raise ConfigurationError(exception_string, err) from err
        logging.debug(
            "PoolCipher - decrypt_to_temp: Decrypted %s to: %s", source, tmp_name
        )
        return tmp_name
