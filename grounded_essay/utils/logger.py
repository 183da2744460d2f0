import sys

from loguru import logger

from grounded_essay.config.settings import settings


def setup_logger(level: str | None = None):
	# Remove default handler
	logger.remove()

	# Console handler
	logger.add(
		sys.stderr,
		level=level or settings.LOG_LEVEL,
		format='<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>',
	)

	# File handler
	log_file = settings.LOG_DIR / 'grounded_essay.log'
	logger.add(
		log_file,
		rotation='500 MB',
		retention='10 days',
		level=level or settings.LOG_LEVEL,
		format='{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}',
		serialize=False,
	)


# Initialize logger
setup_logger()

__all__ = ['logger', 'setup_logger']
