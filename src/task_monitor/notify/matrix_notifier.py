# src/task_monitor/notify/matrix_notifier.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse, RoomSendResponse

from ..core.ports import NotificationOptions

logger = logging.getLogger(__name__)


def _session_path(store_dir: Path) -> Path:
    # Keep session tokens in a single predictable place under a gitignored local dir.
    return store_dir / "session.json"


def _load_json(path: Path) -> dict[str, Any]:
    val = json.loads(path.read_text("utf-8"))
    if isinstance(val, dict):
        return val
    raise ValueError("Expected JSON object")


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except OSError:
        # Not critical on Windows or restricted FS.
        pass


def render_matrix_text(title: str, body: str) -> str:
    return f"{title}\n{body}" if body else title


class MatrixNotifier:
    """
    Sends notifications as plain text messages to one Matrix room.

    The client is created lazily on first send:
    - restore access token/device id from <store>/session.json if present,
    - otherwise log in once with the password and persist the session.
    """

    def __init__(
        self,
        *,
        homeserver: str,
        user_id: str,
        room_id: str,
        password: str = "",
        store_path: str | Path = ".local/task_monitor/matrix_store",
        device_name: str = "task-monitor",
    ) -> None:
        self._homeserver = homeserver.strip()
        self._user_id = user_id.strip()
        self._room_id = room_id.strip()
        self._password = password
        self._store_dir = Path(store_path)
        self._device_name = device_name
        self._client: AsyncClient | None = None

    async def _ensure_client(self) -> AsyncClient | None:
        if self._client is not None:
            return self._client

        if not self._homeserver or not self._user_id or not self._room_id:
            logger.error("Matrix notifier is not configured: homeserver, user id and room id are required")
            return None

        self._store_dir.mkdir(parents=True, exist_ok=True)
        session_file = _session_path(self._store_dir)

        client = AsyncClient(
            self._homeserver,
            self._user_id,
            config=AsyncClientConfig(store_sync_tokens=True),
        )

        if session_file.exists():
            try:
                data = _load_json(session_file)
                access_token = data.get("access_token")
                device_id = data.get("device_id")
                if not access_token or not device_id:
                    raise ValueError("session.json is missing required fields")
                client.access_token = str(access_token)
                client.user_id = str(data.get("user_id") or self._user_id)
                client.device_id = str(device_id)
                logger.info("Matrix session restored for %s", client.user_id)
                self._client = client
                return client
            except Exception as e:
                logger.warning("Failed to restore Matrix session.json, will try password login: %r", e)

        if not self._password:
            logger.error("Matrix session.json not found and password is not set")
            await client.close()
            return None

        resp = await client.login(password=self._password, device_name=self._device_name)
        if not isinstance(resp, LoginResponse):
            logger.error("Matrix login failed: %r", resp)
            await client.close()
            return None

        try:
            _atomic_write_json(
                session_file,
                {"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id},
            )
            logger.info("Matrix session saved to %s (user=%s)", session_file, resp.user_id)
        except OSError as e:
            logger.warning("Failed to write Matrix session.json (%s): %r", session_file, e)

        self._client = client
        return client

    async def send(self, title: str, body: str, options: NotificationOptions) -> bool:
        try:
            client = await self._ensure_client()
            if client is None:
                return False
            resp = await client.room_send(
                room_id=self._room_id,
                message_type="m.room.message",
                content={"msgtype": "m.notice", "body": render_matrix_text(title, body)},
                ignore_unverified_devices=True,
            )
        except Exception:
            logger.exception("Matrix notification failed room=%s", self._room_id)
            return False

        if not isinstance(resp, RoomSendResponse):
            logger.warning("Matrix room_send rejected: %r", resp)
            return False
        return True

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
