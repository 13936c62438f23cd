"""
Session Manager - Handles local storage of API login cookies
"""

import json
import os
from pathlib import Path
from typing import Optional

import requests

from ..domain.session import Session
from ..utils.logger import get_logger

logger = get_logger(__name__)


class SessionManager:
    """
    Manages login cookies in a local JSON file.

    Lets separate CLI invocations reuse one login instead of sending the
    password every time.
    """

    def __init__(self, path: str):
        """
        Initialize SessionManager.

        Args:
            path: Session file location (parent directories are created on save).
        """
        self.path = Path(path).expanduser()

    def load_session(self, api_url: str) -> Optional[Session]:
        """
        Read the stored session for an API base URL.

        Returns:
            Session, or None when the file is missing, corrupt, expired or
            was written for another API URL
        """
        if not self.path.exists():
            logger.info("No stored session found", operation="load_session")
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                session = Session.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning(
                "Discarding unreadable session file",
                operation="load_session",
                context={"path": str(self.path)},
                error=str(e),
            )
            self.clear_session()
            return None

        if session.api_url != api_url:
            logger.info(
                "Stored session belongs to another API",
                operation="load_session",
                context={"stored": session.api_url, "requested": api_url},
            )
            return None

        if session.is_expired():
            logger.info("Stored session has expired", operation="load_session")
            self.clear_session()
            return None

        logger.info(
            f"Loaded {len(session.cookies)} cookies from session file",
            operation="load_session",
        )
        return session

    def save_session(self, session: Session) -> None:
        """
        Write the session file readable by the owner only.

        Raises:
            OSError: If the file cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, indent=2)
        logger.info(
            f"Saved {len(session.cookies)} cookies to session file",
            operation="save_session",
        )

    def clear_session(self) -> bool:
        """
        Remove the session file.

        Returns:
            True if a file was removed, False if there was none
        """
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Cleared stored session", operation="clear_session")
        return True

    def apply_to(self, http_session: requests.Session, api_url: str) -> Optional[Session]:
        """
        Restore stored cookies into a requests session.

        Returns:
            The applied Session, or None when nothing usable is stored
        """
        session = self.load_session(api_url)
        if session is not None:
            session.apply_to(http_session.cookies)
        return session
