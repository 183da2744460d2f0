from fastapi import APIRouter, Request

from grounded_essay.utils.logger import logger

health_router = APIRouter()


@health_router.get('/health')
async def health_check(request: Request):
	logger.info('Health check requested')
	return {'status': 'ok', 'sessions': len(request.app.state.sessions)}
