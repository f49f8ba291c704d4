from __future__ import annotations
from threading import Lock
from typing import Dict, Optional


class BreadcrumbLabels:
	"""Display labels for navigation paths, e.g. ``/subjects/<id>`` -> subject name."""

	def __init__(self) -> None:
		self._labels: Dict[str, str] = {}
		self._lock = Lock()

	def set_label(self, path: str, label: str) -> None:
		with self._lock:
			self._labels = {**self._labels, path: label}

	def get(self, path: str, default: Optional[str] = None) -> Optional[str]:
		return self._labels.get(path, default)

	def remove(self, path: str) -> None:
		with self._lock:
			if path in self._labels:
				self._labels = {k: v for k, v in self._labels.items() if k != path}

	def labels(self) -> Dict[str, str]:
		return dict(self._labels)

	def clear(self) -> None:
		with self._lock:
			self._labels = {}


breadcrumb_labels = BreadcrumbLabels()
