import json
from enum import Enum


class EnumEncoder(json.JSONEncoder):
	def default(self, o):
		if isinstance(o, Enum):
			return o.value
		return super().default(o)
