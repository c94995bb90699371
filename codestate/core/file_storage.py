"""File-backed document store with optional at-rest encryption."""

import json
import logging
import os
import shutil
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Union

from .constants import LOCK_STALE_AFTER, LOCK_TIMEOUT, LOCKS_DIR
from .encryption import DecryptionError, DocumentCipher, is_encrypted
from .result import ErrorKind, Result

logger = logging.getLogger(__name__)


class LockTimeoutError(TimeoutError):
    """Raised when an advisory lock cannot be acquired in time."""

    pass


def atomic_write(path: Path, data: bytes, mode: int = 0o600) -> None:
    """Write bytes so readers only ever see the old or the new content.

    The payload goes to a temporary file in the target directory, is fsynced,
    then renamed over the target.
    """
    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class FileStore:
    """Reads and writes opaque payloads under a data directory."""

    def __init__(
        self,
        data_dir: Union[str, Path],
        encryption_enabled: bool = False,
        encryption_key: Optional[str] = None,
        lock_timeout: float = LOCK_TIMEOUT,
    ):
        """Initialize the store.

        Args:
            data_dir: Root directory every relative path is resolved against
            encryption_enabled: Encrypt payloads on write and decrypt on read
            encryption_key: Passphrase used when encryption is enabled
            lock_timeout: Seconds to wait for an advisory lock
        """
        self.data_dir = Path(data_dir).expanduser().resolve()
        self.encryption_enabled = encryption_enabled
        self._cipher = DocumentCipher(encryption_key) if encryption_enabled else None
        self.lock_timeout = lock_timeout
        self._held_locks: dict = {}

    def _resolve(self, rel_path: str) -> Path:
        """Resolve a caller-supplied path, rejecting anything outside data_dir."""
        if not rel_path or Path(rel_path).is_absolute():
            raise ValueError(f"Invalid storage path: {rel_path!r}")
        full_path = (self.data_dir / rel_path).resolve()
        if full_path != self.data_dir and self.data_dir not in full_path.parents:
            raise ValueError(f"Path escapes data directory: {rel_path!r}")
        return full_path

    def read(self, rel_path: str) -> Result[bytes]:
        """Read and, when needed, decrypt a payload."""
        try:
            file_path = self._resolve(rel_path)
        except ValueError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, str(e), path=rel_path)
        try:
            data = file_path.read_bytes()
        except FileNotFoundError:
            return Result.failure(ErrorKind.NOT_FOUND, f"File not found: {rel_path}", path=rel_path)
        except OSError as e:
            logger.error(f"File read failed: {file_path} ({e})")
            return Result.failure(ErrorKind.STORAGE_READ_FAILED, f"File read failed: {e}", path=rel_path)

        if is_encrypted(data):
            if self._cipher is None:
                return Result.failure(
                    ErrorKind.STORAGE_DECRYPTION_FAILED,
                    "Document is encrypted but encryption is not enabled",
                    path=rel_path,
                )
            try:
                data = self._cipher.decrypt(data)
            except DecryptionError as e:
                logger.error(f"Decryption failed during read: {file_path}")
                return Result.failure(ErrorKind.STORAGE_DECRYPTION_FAILED, str(e), path=rel_path)
        logger.debug(f"File read: {file_path}")
        return Result.success(data)

    def write(self, rel_path: str, data: bytes) -> Result[None]:
        """Encrypt if configured and write atomically."""
        try:
            file_path = self._resolve(rel_path)
        except ValueError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, str(e), path=rel_path)
        payload = self._cipher.encrypt(data) if self._cipher else data
        try:
            atomic_write(file_path, payload)
        except OSError as e:
            logger.error(f"File write failed: {file_path} ({e})")
            return Result.failure(ErrorKind.STORAGE_WRITE_FAILED, f"File write failed: {e}", path=rel_path)
        logger.debug(f"File written atomically: {file_path}")
        return Result.success()

    def exists(self, rel_path: str) -> Result[bool]:
        try:
            return Result.success(self._resolve(rel_path).is_file())
        except ValueError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, str(e), path=rel_path)

    def delete(self, rel_path: str) -> Result[None]:
        """Delete a payload; deleting a missing file succeeds."""
        try:
            file_path = self._resolve(rel_path)
        except ValueError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, str(e), path=rel_path)
        try:
            file_path.unlink()
            logger.debug(f"File deleted: {file_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"File delete failed: {file_path} ({e})")
            return Result.failure(ErrorKind.STORAGE_WRITE_FAILED, f"File delete failed: {e}", path=rel_path)
        return Result.success()

    def list(self, prefix: str, suffix: str = ".json") -> Result[List[str]]:
        """List relative paths of payloads directly under a sub-directory."""
        try:
            directory = self._resolve(prefix)
        except ValueError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, str(e), path=prefix)
        if not directory.is_dir():
            return Result.success([])
        try:
            names = sorted(
                entry.name for entry in directory.iterdir()
                if entry.is_file() and entry.name.endswith(suffix) and not entry.name.startswith(".")
            )
        except OSError as e:
            return Result.failure(ErrorKind.STORAGE_READ_FAILED, f"Directory listing failed: {e}", path=prefix)
        return Result.success([f"{prefix}/{name}" for name in names])

    def remove_tree(self, prefix: str) -> Result[None]:
        """Delete a sub-directory and everything in it; a missing one succeeds."""
        try:
            directory = self._resolve(prefix)
        except ValueError as e:
            return Result.failure(ErrorKind.INVALID_INPUT, str(e), path=prefix)
        if directory == self.data_dir:
            return Result.failure(ErrorKind.INVALID_INPUT, "Refusing to remove the data directory itself", path=prefix)
        try:
            shutil.rmtree(directory)
            logger.debug(f"Directory removed: {directory}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Directory removal failed: {directory} ({e})")
            return Result.failure(ErrorKind.STORAGE_WRITE_FAILED, f"Directory removal failed: {e}", path=prefix)
        return Result.success()

    def read_json(self, rel_path: str) -> Result[Any]:
        """Read a payload and parse it as JSON."""
        result = self.read(rel_path)
        if not result.ok:
            return result
        try:
            return Result.success(json.loads(result.value.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Invalid JSON document {rel_path}: {e}")
            return Result.failure(ErrorKind.STORAGE_READ_FAILED, f"Invalid JSON document: {e}", path=rel_path)

    def write_json(self, rel_path: str, document: Any) -> Result[None]:
        data = json.dumps(document, indent=2, sort_keys=True).encode("utf-8")
        return self.write(rel_path, data)

    @contextmanager
    def lock(self, name: str) -> Iterator[None]:
        """Advisory lock serializing read-modify-write cycles across processes.

        The lock is a directory created with mkdir, which is atomic. Locks held
        longer than LOCK_STALE_AFTER or owned by a dead process are broken.
        Re-entrant within one FileStore instance.
        """
        if self._held_locks.get(name):
            self._held_locks[name] += 1
            try:
                yield
            finally:
                self._held_locks[name] -= 1
            return

        lock_dir = self.data_dir / LOCKS_DIR / f"{name}.lock"
        lock_dir.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                lock_dir.mkdir()
                (lock_dir / "owner").write_text(str(os.getpid()))
                break
            except FileExistsError:
                if self._is_stale(lock_dir):
                    logger.warning(f"Breaking stale lock: {lock_dir}")
                    shutil.rmtree(lock_dir, ignore_errors=True)
                    continue
                if time.monotonic() > deadline:
                    raise LockTimeoutError(f"Timed out waiting for lock {name!r}")
                time.sleep(0.05)

        self._held_locks[name] = 1
        try:
            yield
        finally:
            self._held_locks.pop(name, None)
            shutil.rmtree(lock_dir, ignore_errors=True)

    @staticmethod
    def _is_stale(lock_dir: Path) -> bool:
        try:
            age = time.time() - lock_dir.stat().st_mtime
            owner = int((lock_dir / "owner").read_text().strip())
        except (OSError, ValueError):
            # owner file not written yet; only stale once old enough
            try:
                return time.time() - lock_dir.stat().st_mtime > LOCK_STALE_AFTER
            except OSError:
                return False
        if age > LOCK_STALE_AFTER:
            return True
        try:
            os.kill(owner, 0)
        except ProcessLookupError:
            return True
        except PermissionError:
            return False
        return False
