import json
from dataclasses import asdict
from enum import Enum
from pathlib import Path

from dacite import Config, from_dict

from grounded_essay.errors import NotFoundError
from grounded_essay.models import ExpansionState, OutlineRecord
from grounded_essay.utils.logger import logger

from .helpers import EnumEncoder


class OutlineStore:
	"""Outlines and their planning requests keyed by ``outline_id``.

	Records live in memory. With a ``storage_path`` every ``save`` also writes
	``outlines/<outline_id>.json`` so a session can be reloaded later.
	"""

	def __init__(self, storage_path: Path | None = None):
		self.storage_path = storage_path
		self._records: dict[str, OutlineRecord] = {}

	@property
	def outlines_dir(self) -> Path | None:
		return self.storage_path / 'outlines' if self.storage_path else None

	def save(self, record: OutlineRecord) -> None:
		self._records[record.outline.outline_id] = record

		if self.outlines_dir is None:
			return

		self.outlines_dir.mkdir(parents=True, exist_ok=True)
		with open(self._file_for(record.outline.outline_id), 'w') as f:
			json.dump(asdict(record), f, cls=EnumEncoder, indent=2)

	def get(self, outline_id: str) -> OutlineRecord:
		record = self._records.get(outline_id)
		if record is None:
			record = self._load(outline_id)
		if record is None:
			raise NotFoundError(f'Outline {outline_id} not found')
		return record

	def exists(self, outline_id: str) -> bool:
		if outline_id in self._records:
			return True
		return self.outlines_dir is not None and self._file_for(outline_id).exists()

	def list_ids(self) -> list[str]:
		ids = set(self._records)
		if self.outlines_dir is not None and self.outlines_dir.exists():
			ids.update(f.stem for f in self.outlines_dir.glob('outline_*.json'))
		return sorted(ids)

	def delete(self, outline_id: str) -> None:
		self._records.pop(outline_id, None)
		if self.outlines_dir is not None and self._file_for(outline_id).exists():
			self._file_for(outline_id).unlink()

	def _file_for(self, outline_id: str) -> Path:
		return self.outlines_dir / f'{outline_id}.json'

	def _load(self, outline_id: str) -> OutlineRecord | None:
		if self.outlines_dir is None or not self._file_for(outline_id).exists():
			return None

		with open(self._file_for(outline_id)) as f:
			data = json.load(f)

		config = Config(cast=[Enum])
		record = from_dict(data_class=OutlineRecord, data=data, config=config)

		# A paragraph saved mid-expansion was interrupted by a restart
		for paragraph in record.outline.paragraphs:
			if paragraph.expansion_state == ExpansionState.EXPANDING:
				paragraph.fail_expansion('Expansion interrupted')

		logger.info(f'Loaded outline {outline_id} from {self.outlines_dir}')
		self._records[outline_id] = record
		return record
