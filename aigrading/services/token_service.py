import tiktoken
import logging

logger = logging.getLogger("token_service")


class TokenService:
    def __init__(self, encoding_name: str = "cl100k_base"):
        # cl100k_base matches the GPT-4 / gpt-4o-mini family closely enough for estimates.
        # Loaded lazily: tiktoken fetches the encoding file on first use.
        self.encoding_name = encoding_name
        self._encoder = None

    def _get_encoder(self):
        if self._encoder is None:
            self._encoder = tiktoken.get_encoding(self.encoding_name)
        return self._encoder

    def count_tokens(self, text: str) -> int:
        """
        Estimated number of tokens in the text.
        """
        if not text:
            return 0
        try:
            return len(self._get_encoder().encode(text))
        except Exception as e:
            logger.warning(f"Token counting unavailable ({e}), using character estimate")
            # Rough fallback: ~4 characters per token
            return len(text) // 4


token_service = TokenService()
