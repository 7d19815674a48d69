"""OpenAI embeddings service."""

import numpy as np
from openai import OpenAI

from .config import config
from .errors import EmbeddingError

logger = config.get_logger(__name__)


class EmbeddingService:
    """Handles OpenAI embeddings generation."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        """Initialize the EmbeddingService with OpenAI API key and model.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
            dimensions: Target vector size. If None, uses
                config.EMBEDDING_DIMENSIONS.
        """
        api_key = api_key or config.get_openai_api_key()
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key,
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
        )
        self.model = model or config.EMBEDDING_MODEL
        self.dimensions = dimensions or config.EMBEDDING_DIMENSIONS

    def get_embedding(self, text: str) -> np.ndarray:
        """Get embedding for a single text.

        Args:
            text: The input text to generate an embedding for.

        Returns:
            np.ndarray: The embedding vector for the input text.

        Raises:
            EmbeddingError: If the embeddings API call fails.
        """
        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=text,
                dimensions=self.dimensions,
            )
            embedding = np.array(response.data[0].embedding)
        except Exception as exc:
            msg = f"Embedding request failed: {exc}"
            raise EmbeddingError(msg) from exc
        else:
            return embedding

    def get_embeddings_batch(
        self,
        texts: list[str],
        batch_size: int = 100,
    ) -> list[np.ndarray]:
        """Get embeddings for multiple texts in batches.

        Args:
            texts: List of input texts to generate embeddings for.
            batch_size: Number of texts to process in each batch.

        Returns:
            list[np.ndarray]: List of embedding vectors for the input texts.

        Raises:
            EmbeddingError: If any batch request fails.
        """
        embeddings = []

        for i in range(0, len(texts), batch_size):
            batch_texts = texts[i : i + batch_size]
            try:
                response = self.client.embeddings.create(
                    model=self.model,
                    input=batch_texts,
                    dimensions=self.dimensions,
                )
            except Exception as exc:
                msg = f"Batch embedding request failed: {exc}"
                raise EmbeddingError(msg) from exc
            embeddings.extend(np.array(data.embedding) for data in response.data)
            logger.info("Generated embeddings for batch %d", i // batch_size + 1)

        return embeddings
