from abc import ABC, abstractmethod

SYSTEM_PROMPT = (
	"You are a helpful assistant. Answer using the knowledge base provided in "
	"the prompt and say so when the answer is not covered by it."
)


class AbstractLLMClient(ABC):
	"""Interface for generative AI clients that turn a prompt into text."""

	provider_name: str = "abstract"

	@abstractmethod
	async def generate_text(self, prompt: str) -> str:
		"""Generate a reply for a fully formed prompt.

		Args:
			prompt: Knowledge base prefix plus the user's question.

		Returns:
			str: Generated reply text.

		Raises:
			LLMAppError: If the provider is unavailable or the call fails.
		"""
		...

	def is_available(self) -> bool:
		"""Return True when the client is configured to serve requests."""
		return True
