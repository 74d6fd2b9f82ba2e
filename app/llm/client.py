import requests
import json
from typing import Iterator, Optional, Dict, Any
from abc import ABC, abstractmethod

from pydantic import BaseModel

from app.core.config import settings
from app.core.errors import MissingCredentialError, UpstreamError
from app.core.logging import get_logger

logger = get_logger(__name__)


class GenerationConfig(BaseModel):
    """Per-call generation options passed to the provider"""

    model: Optional[str] = None
    response_mime_type: str = "text/plain"
    response_json_schema: Optional[Dict[str, Any]] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_output_tokens: Optional[int] = None

    def to_generation_config(self) -> Dict[str, Any]:
        """Map to Gemini's camelCase ``generationConfig`` object"""
        mapping = {
            "responseMimeType": self.response_mime_type,
            "responseJsonSchema": self.response_json_schema,
            "temperature": self.temperature,
            "topP": self.top_p,
            "topK": self.top_k,
            "maxOutputTokens": self.max_output_tokens,
        }
        return {key: value for key, value in mapping.items() if value is not None}


class LLMClient(ABC):
    """Abstract base class for LLM clients"""

    model: str

    @abstractmethod
    def generate(self, prompt: str, config: Optional[GenerationConfig] = None) -> str:
        """Generate a complete response from the LLM"""
        pass

    @abstractmethod
    def stream(self, prompt: str, config: Optional[GenerationConfig] = None) -> Iterator[str]:
        """Stream response fragments from the LLM"""
        pass


def _chunk_text(data: Dict[str, Any]) -> Optional[str]:
    """Join the text parts of the first candidate, None if there is no candidate"""
    candidates = data.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


class GeminiClient(LLMClient):
    """Gemini REST client (generateContent / streamGenerateContent)"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = settings.GEMINI_BASE_URL,
        model: str = settings.GEMINI_MODEL,
        temperature: Optional[float] = settings.LLM_TEMPERATURE,
        top_p: Optional[float] = settings.LLM_TOP_P,
        top_k: Optional[int] = settings.LLM_TOP_K,
        max_output_tokens: Optional[int] = settings.LLM_MAX_OUTPUT_TOKENS,
        timeout: int = settings.LLM_TIMEOUT
    ):
        """
        Initialize Gemini client

        Args:
            api_key: Gemini API key (defaults to GEMINI_API_KEY)
            base_url: Models endpoint base URL
            model: Default model identifier (e.g., 'gemini-2.5-flash')
            temperature: Default sampling temperature
            top_p: Default nucleus sampling parameter
            top_k: Default top-K sampling parameter
            max_output_tokens: Default output token limit
            timeout: Request timeout in seconds

        Raises:
            MissingCredentialError: If no API key is available
        """
        self.api_key = api_key or settings.GEMINI_API_KEY
        if not self.api_key:
            raise MissingCredentialError("Missing GEMINI_API_KEY environment variable")

        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self.top_k = top_k
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout

        logger.info(f"Initialized Gemini client with model: {self.model}")

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def _resolve_config(self, config: Optional[GenerationConfig]) -> GenerationConfig:
        """Fill unset sampling options from client defaults"""
        config = config or GenerationConfig()
        return config.model_copy(update={
            "model": config.model or self.model,
            "temperature": config.temperature if config.temperature is not None else self.temperature,
            "top_p": config.top_p if config.top_p is not None else self.top_p,
            "top_k": config.top_k if config.top_k is not None else self.top_k,
            "max_output_tokens": (
                config.max_output_tokens
                if config.max_output_tokens is not None
                else self.max_output_tokens
            ),
        })

    def _build_payload(self, prompt: str, config: GenerationConfig) -> Dict[str, Any]:
        """Build request payload for Gemini"""
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": config.to_generation_config(),
        }

    def _url(self, model: str, method: str) -> str:
        return f"{self.base_url}/{model}:{method}"

    def generate(self, prompt: str, config: Optional[GenerationConfig] = None) -> str:
        """
        Generate a complete response via generateContent

        Args:
            prompt: Input prompt
            config: Generation options (model, MIME type, schema, sampling)

        Returns:
            Generated text response

        Raises:
            UpstreamError: If the call fails or the response carries no candidate
        """
        config = self._resolve_config(config)
        payload = self._build_payload(prompt, config)

        try:
            logger.debug(f"Generating response with model: {config.model}")
            response = requests.post(
                self._url(config.model, "generateContent"),
                headers=self._headers,
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            logger.error(f"Gemini returned an error status: {e}")
            raise UpstreamError(str(e), status_code=e.response.status_code) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Error generating response: {e}")
            raise UpstreamError(str(e)) from e
        except ValueError as e:
            logger.error(f"Error parsing Gemini response: {e}")
            raise UpstreamError(f"Invalid JSON from provider: {e}") from e

        text = _chunk_text(data)
        if text is None:
            feedback = data.get("promptFeedback", {})
            raise UpstreamError(f"No candidates returned (promptFeedback={feedback})")

        logger.debug(f"Generated response ({len(text)} chars)")
        return text

    def stream(self, prompt: str, config: Optional[GenerationConfig] = None) -> Iterator[str]:
        """
        Stream response fragments via streamGenerateContent (SSE transport)

        Args:
            prompt: Input prompt
            config: Generation options

        Yields:
            Text fragments in generation order; a chunk without text yields ""

        Raises:
            UpstreamError: If the call fails before or during the stream
        """
        config = self._resolve_config(config)
        payload = self._build_payload(prompt, config)

        try:
            logger.debug(f"Streaming response with model: {config.model}")
            with requests.post(
                self._url(config.model, "streamGenerateContent"),
                params={"alt": "sse"},
                headers=self._headers,
                json=payload,
                timeout=self.timeout,
                stream=True
            ) as response:
                response.raise_for_status()

                # split on raw bytes: str.splitlines would also break on U+2028
                for raw in response.iter_lines():
                    line = raw.decode("utf-8")
                    if not line.startswith("data:"):
                        continue
                    try:
                        data = json.loads(line[len("data:"):].strip())
                    except json.JSONDecodeError as e:
                        raise UpstreamError(f"Malformed stream chunk: {e}") from e

                    if "error" in data:
                        raise UpstreamError(f"Provider stream error: {data['error']}")

                    yield _chunk_text(data) or ""

            logger.debug("Streaming response completed")

        except requests.exceptions.HTTPError as e:
            logger.error(f"Gemini returned an error status: {e}")
            raise UpstreamError(str(e), status_code=e.response.status_code) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Error streaming response: {e}")
            raise UpstreamError(str(e)) from e

    def get_model_info(self) -> Dict[str, Any]:
        """Get metadata for the configured model"""
        try:
            response = requests.get(
                f"{self.base_url}/{self.model}",
                headers=self._headers,
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error getting model info: {e}")
            raise UpstreamError(str(e)) from e


class LLMClientFactory:
    """Factory for creating LLM clients"""

    _clients = {
        "gemini": GeminiClient,
    }

    @classmethod
    def create_client(
        cls,
        client_type: str = settings.LLM_TYPE,
        **kwargs
    ) -> LLMClient:
        """
        Create LLM client instance

        Args:
            client_type: Type of client ('gemini')
            **kwargs: Additional arguments for client initialization

        Returns:
            LLMClient instance

        Raises:
            ValueError: If client type is not supported
        """
        if client_type not in cls._clients:
            raise ValueError(
                f"Unsupported LLM client type: {client_type}. "
                f"Supported types: {list(cls._clients.keys())}"
            )

        client_class = cls._clients[client_type]
        logger.info(f"Creating {client_type} LLM client")
        return client_class(**kwargs)


# Default client instance, shared by all requests
llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create the LLM client"""
    global llm_client
    if llm_client is None:
        llm_client = LLMClientFactory.create_client()
    return llm_client


def set_llm_client(client: Optional[LLMClient]):
    """Set custom LLM client (None resets to lazy creation)"""
    global llm_client
    llm_client = client
