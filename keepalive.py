from __future__ import annotations

import logging
import threading
from typing import Optional

import requests


logger = logging.getLogger(__name__)

PING_INTERVAL_SECONDS = 5 * 60
STOP_TIMEOUT_SECONDS = 5.0


class KeepAlive:
	"""Periodically GETs the service's own status URL so an idle host stays awake.

	Failures are logged and otherwise ignored; the timer keeps running until
	stop() is called.
	"""

	def __init__(
		self,
		url: str,
		*,
		interval: float = PING_INTERVAL_SECONDS,
		session: Optional[requests.Session] = None,
	) -> None:
		self.url = url
		self.interval = interval
		self.session = session or requests.Session()
		self._stop = threading.Event()
		self._thread: Optional[threading.Thread] = None

	@property
	def running(self) -> bool:
		return self._thread is not None and self._thread.is_alive()

	def start(self) -> None:
		if self.running:
			return
		self._stop.clear()
		self._thread = threading.Thread(target=self._run, name="keepalive", daemon=True)
		self._thread.start()
		logger.info("Self-ping every %ss to %s", self.interval, self.url)

	def stop(self, timeout: Optional[float] = STOP_TIMEOUT_SECONDS) -> None:
		# A ping still in flight after timeout is left to the daemon thread.
		self._stop.set()
		if self._thread is not None:
			self._thread.join(timeout)
			self._thread = None

	def ping(self) -> Optional[int]:
		try:
			resp = self.session.get(self.url)
		except Exception as exc:
			logger.warning("Self-ping to %s failed: %s", self.url, exc)
			return None
		logger.info("Self-ping to %s returned %s", self.url, resp.status_code)
		return resp.status_code

	def _run(self) -> None:
		while not self._stop.wait(self.interval):
			self.ping()
