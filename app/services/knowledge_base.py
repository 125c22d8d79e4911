"""Knowledge base loading and prompt assembly.

The knowledge base is a directory of Markdown files concatenated into one
prompt prefix. Loading is plain file I/O, cached with a TTL so a chat request
does not hit the disk every time.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from app.core.errors import KnowledgeBaseAppError
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)

_CACHE_KEY = "knowledge_base"


class FilesystemKnowledgeProvider:
    """Reads every ``*.md`` file in a directory, in name order."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _files(self) -> list[Path]:
        return sorted(p for p in self.path.glob("*.md") if p.is_file())

    def get_knowledge(self) -> str:
        """Concatenate all knowledge files.

        Raises:
            KnowledgeBaseAppError: If the directory is missing or empty.
        """
        if not self.path.is_dir():
            logger.error("knowledge.dir_missing", extra={"path": str(self.path)})
            raise KnowledgeBaseAppError(
                code="knowledge_base_missing",
                message="Knowledge base directory not found",
                details={"path": str(self.path)},
            )

        files = self._files()
        if not files:
            logger.error("knowledge.no_files", extra={"path": str(self.path)})
            raise KnowledgeBaseAppError(
                code="knowledge_base_empty",
                message="No knowledge base files found",
                details={"path": str(self.path)},
            )

        parts: list[str] = []
        for file in files:
            try:
                parts.append(file.read_text(encoding="utf-8"))
            except OSError as exc:
                logger.warning(
                    "knowledge.read_failed",
                    extra={"file": file.name, "error": str(exc)},
                )

        logger.info(
            "knowledge.loaded",
            extra={"total_files": len(files), "loaded_files": len(parts)},
        )
        return "\n\n".join(parts).strip()

    def describe(self) -> dict[str, Any]:
        """Summarize the knowledge directory for health checks."""
        files = self._files() if self.path.is_dir() else []
        return {
            "status": "ok" if files else "warning",
            "path": str(self.path),
            "files_count": len(files),
            "files": [f.name for f in files],
        }


class KnowledgeBaseService:
    """Serves the knowledge base prefix and builds chat prompts."""

    def __init__(
        self,
        provider: FilesystemKnowledgeProvider,
        *,
        cache_enabled: bool = True,
        cache_ttl_seconds: int = 3600,
    ) -> None:
        self.provider = provider
        self.cache_enabled = cache_enabled
        self._cache: SimpleTTLCache[str] = SimpleTTLCache(ttl_seconds=cache_ttl_seconds, max_entries=1)

    def get_knowledge(self) -> str:
        if self.cache_enabled:
            cached = self._cache.get(_CACHE_KEY)
            if cached is not None:
                return cached

        knowledge = self.provider.get_knowledge()
        if self.cache_enabled:
            self._cache.set(_CACHE_KEY, knowledge)
        return knowledge

    def invalidate_cache(self) -> None:
        logger.info("knowledge.cache_invalidated")
        self._cache.clear()

    def build_prompt(
        self,
        knowledge: str,
        user_message: str,
        conversation_id: str | None = None,
    ) -> str:
        """Append optional conversation context and the user's question.

        Args:
            knowledge: Knowledge base prefix.
            user_message: The user's chat message.
            conversation_id: Optional id of the ongoing conversation.

        Returns:
            str: Full prompt for the AI client.
        """
        prompt = knowledge
        if conversation_id:
            prompt += f"\n\nConversation context:\nconversation ID: {conversation_id}\n"
        prompt += f"\n\nUser Question: {user_message}"
        return prompt

    def describe(self) -> dict[str, Any]:
        info = self.provider.describe()
        info["cache"] = self._cache.stats() if self.cache_enabled else None
        return info
