import uuid
from collections.abc import Callable

from grounded_essay.core.workflow import EssayWorkflow
from grounded_essay.errors import NotFoundError
from grounded_essay.utils.logger import logger

WorkflowFactory = Callable[[], EssayWorkflow]


class SessionManager:
	"""One EssayWorkflow per session id, held in memory."""

	def __init__(self, workflow_factory: WorkflowFactory):
		self.workflow_factory = workflow_factory
		self._sessions: dict[str, EssayWorkflow] = {}

	def create(self) -> str:
		session_id = f'session_{uuid.uuid4().hex[:12]}'
		self._sessions[session_id] = self.workflow_factory()
		logger.info(f'Created session {session_id}')
		return session_id

	def get(self, session_id: str) -> EssayWorkflow:
		workflow = self._sessions.get(session_id)
		if workflow is None:
			raise NotFoundError(f'Session {session_id} not found')
		return workflow

	def close(self, session_id: str) -> None:
		if self._sessions.pop(session_id, None) is None:
			raise NotFoundError(f'Session {session_id} not found')
		logger.info(f'Closed session {session_id}')

	def __len__(self) -> int:
		return len(self._sessions)
