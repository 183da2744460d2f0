from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from grounded_essay.api.routes.health import health_router
from grounded_essay.api.routes.sessions import sessions_router
from grounded_essay.api.sessions import SessionManager, WorkflowFactory
from grounded_essay.config.settings import settings
from grounded_essay.core.workflow import EssayWorkflow
from grounded_essay.errors import (
	EssayError,
	ExpansionInProgressError,
	GenerationError,
	NotFoundError,
	UsageLimitError,
	ValidationError,
)
from grounded_essay.llm.client import create_llm_client_from_settings
from grounded_essay.utils.logger import logger, setup_logger

ERROR_STATUS = {
	ValidationError: 422,
	GenerationError: 502,
	NotFoundError: 404,
	ExpansionInProgressError: 409,
	UsageLimitError: 402,
}


def default_workflow_factory() -> EssayWorkflow:
	return EssayWorkflow(create_llm_client_from_settings(settings), settings=settings)


def create_app(workflow_factory: WorkflowFactory | None = None):
	setup_logger()
	logger.info(f'Starting {settings.APP_NAME} FastAPI application...')

	app = FastAPI(
		title=settings.APP_NAME,
		version='0.1.0',
		description='Grounded essay generation from student notes and references',
	)
	app.state.sessions = SessionManager(workflow_factory or default_workflow_factory)

	app.include_router(health_router, prefix='/api')
	app.include_router(sessions_router, prefix='/api')

	@app.exception_handler(EssayError)
	async def essay_error_handler(request: Request, exc: EssayError):
		status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
		if status_code >= 500:
			logger.error(f'{request.method} {request.url.path} failed: {exc}')
		else:
			logger.warning(f'{request.method} {request.url.path} rejected: {exc}')

		content = {'detail': str(exc), 'error': type(exc).__name__}
		if isinstance(exc, GenerationError) and exc.status is not None:
			content['upstream_status'] = exc.status
		return JSONResponse(status_code=status_code, content=content)

	@app.on_event('startup')
	async def startup_event():
		logger.info('FastAPI app startup complete.')

	@app.on_event('shutdown')
	async def shutdown_event():
		logger.info('FastAPI app shutdown complete.')

	return app
