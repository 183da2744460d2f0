class EssayError(Exception):
	pass


class ValidationError(EssayError):
	pass


class NotFoundError(EssayError):
	pass


class UsageLimitError(EssayError):
	pass


class ExpansionInProgressError(EssayError):
	def __init__(self, outline_id: str, paragraph_index: int):
		self.outline_id = outline_id
		self.paragraph_index = paragraph_index
		super().__init__(f'Paragraph {paragraph_index} of outline {outline_id} is already expanding')


class GenerationError(EssayError):
	def __init__(self, message: str, status: int | None = None):
		self.status = status
		self.message = message
		super().__init__(f'[{status}] {message}' if status is not None else message)
