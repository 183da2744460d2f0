import asyncio
from enum import Enum
from typing import Protocol

from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from grounded_essay.config.settings import Settings
from grounded_essay.errors import GenerationError
from grounded_essay.utils.logger import logger


class GenerationCapability(Protocol):
	async def generate(self, system_prompt: str, user_prompt: str) -> str: ...


class LLMProvider(Enum):
	OPENROUTER = 'openrouter'
	OPENAI = 'openai'
	ANTHROPIC = 'anthropic'


def _is_transient(exc: BaseException) -> bool:
	status = getattr(exc, 'status_code', None)
	return status is None or status == 429 or status >= 500


class LLMClient:
	def __init__(
		self,
		provider: str,
		model: str,
		api_key: str,
		temperature: float = 0.4,
		max_tokens: int = 2000,
		site_url: str | None = None,
		app_name: str | None = None,
	):
		self.provider = LLMProvider(provider)
		self.model = model
		self.api_key = api_key
		self.temperature = temperature
		self.max_tokens = max_tokens
		self.site_url = site_url
		self.app_name = app_name

		self.total_input_tokens = 0
		self.total_output_tokens = 0

		self._client = self._initialize_client()
		logger.info(f'LLM Client initialized: {provider}/{model}')

	def _initialize_client(self):
		if self.provider == LLMProvider.OPENROUTER:
			from openai import AsyncOpenAI

			return AsyncOpenAI(base_url='https://openrouter.ai/api/v1', api_key=self.api_key)
		elif self.provider == LLMProvider.OPENAI:
			from openai import AsyncOpenAI

			return AsyncOpenAI(api_key=self.api_key)
		elif self.provider == LLMProvider.ANTHROPIC:
			from anthropic import AsyncAnthropic

			return AsyncAnthropic(api_key=self.api_key)
		else:
			raise ValueError(f'Unsupported provider: {self.provider}')

	async def generate(self, system_prompt: str, user_prompt: str) -> str:
		logger.debug(f'Generating with {self.provider.value}/{self.model}...')

		try:
			text = await self._generate_with_retry(system_prompt, user_prompt)
		except Exception as e:
			logger.error(f'Generation failed ({self.provider.value}): {e}')
			raise GenerationError(f'Failed to generate text: {e}', status=getattr(e, 'status_code', None)) from e

		if not text or not text.strip():
			raise GenerationError('Generation returned an empty response')

		logger.debug(
			f'Generation complete. Tokens used: input={self.total_input_tokens}, output={self.total_output_tokens}'
		)
		return text

	@retry(
		stop=stop_after_attempt(3),
		wait=wait_exponential(multiplier=2, min=2, max=10),
		retry=retry_if_exception(_is_transient),
		reraise=True,
	)
	async def _generate_with_retry(self, system_prompt: str, user_prompt: str) -> str:
		if self.provider == LLMProvider.ANTHROPIC:
			return await self._generate_anthropic(system_prompt, user_prompt)
		return await self._generate_openai(system_prompt, user_prompt)

	async def _generate_openai(self, system_prompt: str, user_prompt: str) -> str:
		messages = []

		if system_prompt:
			messages.append({'role': 'system', 'content': system_prompt})

		messages.append({'role': 'user', 'content': user_prompt})

		extra_headers = {}
		if self.provider == LLMProvider.OPENROUTER:
			if self.site_url:
				extra_headers['HTTP-Referer'] = self.site_url
			if self.app_name:
				extra_headers['X-Title'] = self.app_name

		response = await self._client.chat.completions.create(
			model=self.model,
			messages=messages,
			temperature=self.temperature,
			max_tokens=self.max_tokens,
			extra_headers=extra_headers or None,
		)

		# Track usage
		if hasattr(response, 'usage') and response.usage:
			self.total_input_tokens += response.usage.prompt_tokens
			self.total_output_tokens += response.usage.completion_tokens

		return response.choices[0].message.content or ''

	async def _generate_anthropic(self, system_prompt: str, user_prompt: str) -> str:
		kwargs = {
			'model': self.model,
			'max_tokens': self.max_tokens,
			'temperature': self.temperature,
			'messages': [{'role': 'user', 'content': user_prompt}],
		}

		if system_prompt:
			kwargs['system'] = system_prompt

		response = await self._client.messages.create(**kwargs)

		if hasattr(response, 'usage') and response.usage:
			self.total_input_tokens += response.usage.input_tokens
			self.total_output_tokens += response.usage.output_tokens

		return response.content[0].text

	def get_usage_stats(self) -> dict[str, int]:
		"""Get token usage statistics."""
		return {
			'input_tokens': self.total_input_tokens,
			'output_tokens': self.total_output_tokens,
			'total_tokens': self.total_input_tokens + self.total_output_tokens,
		}


async def generate_bounded(
	generator: GenerationCapability, system_prompt: str, user_prompt: str, timeout_seconds: float
) -> str:
	"""Call the generator under a hard timeout, normalising every failure to GenerationError."""
	try:
		return await asyncio.wait_for(generator.generate(system_prompt, user_prompt), timeout=timeout_seconds)
	except asyncio.TimeoutError as e:
		raise GenerationError(f'Generation timed out after {timeout_seconds:g}s') from e
	except GenerationError:
		raise
	except Exception as e:
		raise GenerationError(f'Generation failed: {e}', status=getattr(e, 'status_code', None)) from e


def create_llm_client_from_settings(settings: Settings) -> LLMClient:
	provider = LLMProvider(settings.LLM_PROVIDER)
	api_keys = {
		LLMProvider.OPENROUTER: settings.OPENROUTER_API_KEY,
		LLMProvider.OPENAI: settings.OPENAI_API_KEY,
		LLMProvider.ANTHROPIC: settings.ANTHROPIC_API_KEY,
	}
	api_key = api_keys[provider]
	if not api_key:
		raise ValueError(f'No API key configured for LLM provider {provider.value}')

	return LLMClient(
		provider=provider.value,
		model=settings.WRITING_MODEL,
		api_key=api_key,
		temperature=settings.LLM_TEMPERATURE,
		max_tokens=settings.LLM_MAX_TOKENS,
		site_url=settings.OPENROUTER_SITE_URL,
		app_name=settings.APP_NAME,
	)
