import re
import uuid

from grounded_essay.errors import ValidationError
from grounded_essay.models import OriginKind, SourceGroup, SourceItem, UploadRecord
from grounded_essay.utils.logger import logger

PASTED_TITLE_LENGTH = 30
# Ids are embedded in [id:pN] citation markers
SOURCE_ID_PATTERN = re.compile(r'^[^\s\[\];,]+$')


class SourceRegistry:
	"""The session's uploaded and pasted materials, split into notes and references.

	All operations are local and synchronous. Operations addressed by id are
	no-ops for unknown ids so duplicate UI dispatches are harmless.
	"""

	def __init__(self):
		self._items: dict[str, SourceItem] = {}

	def add_source(
		self,
		group: SourceGroup,
		content: str,
		origin_kind: OriginKind,
		display_name: str | None = None,
		page_count: int | None = None,
		source_id: str | None = None,
	) -> SourceItem:
		if not isinstance(content, str) or not content.strip():
			raise ValidationError('Source content cannot be empty')

		if page_count is not None and page_count <= 0:
			raise ValidationError(f'page_count must be positive, got {page_count}')

		if source_id is not None and not SOURCE_ID_PATTERN.match(source_id):
			raise ValidationError(f'Source id {source_id!r} cannot contain whitespace, brackets, commas or semicolons')

		item_id = source_id or self._new_id(origin_kind)
		if item_id in self._items:
			raise ValidationError(f"Source id '{item_id}' already exists")

		item = SourceItem(
			id=item_id,
			group=group,
			display_name=display_name or self._default_name(content, origin_kind),
			excerpt_text=content,
			priority=False,
			order=self._next_order(group),
			origin_kind=origin_kind,
			page_count=page_count,
		)
		self._items[item.id] = item

		logger.info(f'Added {origin_kind.value} source {item.id} to {group.value} (order {item.order})')
		return item

	def add_upload(self, group: SourceGroup, record: UploadRecord) -> SourceItem:
		return self.add_source(
			group,
			record.excerpt_text,
			OriginKind.FILE,
			display_name=record.file_name,
			page_count=record.page_count,
			source_id=record.file_id,
		)

	def toggle_priority(self, source_id: str) -> None:
		item = self._items.get(source_id)
		if item is None:
			logger.debug(f'toggle_priority ignored for unknown source {source_id}')
			return
		item.priority = not item.priority

	def update_excerpt(self, source_id: str, text: str) -> None:
		item = self._items.get(source_id)
		if item is None:
			logger.debug(f'update_excerpt ignored for unknown source {source_id}')
			return
		item.excerpt_text = text

	def reorder(self, group: SourceGroup, from_index: int, to_index: int) -> None:
		items = self.list_items(group)
		if not (0 <= from_index < len(items) and 0 <= to_index < len(items)):
			logger.warning(f'Reorder {from_index}->{to_index} out of range for {group.value} ({len(items)} items)')
			return

		moved = items.pop(from_index)
		items.insert(to_index, moved)
		self._assign_orders(items)

	def remove(self, source_id: str) -> None:
		item = self._items.pop(source_id, None)
		if item is None:
			logger.debug(f'remove ignored for unknown source {source_id}')
			return

		self._assign_orders(self.list_items(item.group))
		logger.info(f'Removed source {source_id} from {item.group.value}')

	def get(self, source_id: str) -> SourceItem | None:
		return self._items.get(source_id)

	def list_items(self, group: SourceGroup | None = None) -> list[SourceItem]:
		items = [i for i in self._items.values() if group is None or i.group == group]
		return sorted(items, key=lambda i: (i.group.value, i.order))

	def __len__(self) -> int:
		return len(self._items)

	def _next_order(self, group: SourceGroup) -> int:
		orders = [i.order for i in self._items.values() if i.group == group]
		return max(orders) + 1 if orders else 0

	def _assign_orders(self, items: list[SourceItem]) -> None:
		for position, item in enumerate(items):
			item.order = position

	def _new_id(self, origin_kind: OriginKind) -> str:
		prefix = {OriginKind.FILE: 'file', OriginKind.PASTED_TEXT: 'text', OriginKind.URL: 'url'}[origin_kind]
		return f'{prefix}_{uuid.uuid4().hex[:12]}'

	def _default_name(self, content: str, origin_kind: OriginKind) -> str:
		if origin_kind == OriginKind.URL:
			return 'Web source'
		if origin_kind == OriginKind.PASTED_TEXT:
			return f'Pasted Text - {content.strip()[:PASTED_TITLE_LENGTH]}...'
		return 'Untitled file'
