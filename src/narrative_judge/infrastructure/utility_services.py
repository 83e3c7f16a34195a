"""Clock, chat-payload and file helpers used by the infrastructure layer."""

import datetime as dt
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, cast

from ..services import IFileSystemService, IResponseParser, ITimeService

_USAGE_KEYS = ("prompt_tokens", "completion_tokens", "total_tokens")


class TimeService(ITimeService):
    """Clock for verdict timestamps and narrative ordering."""

    def now_iso(self) -> str:
        """Return the current UTC time as ``YYYY-MM-DDTHH:MM:SSZ``."""
        return dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class ResponseParser(IResponseParser):
    """Reads the pieces of a chat-completions payload the audit pass needs.

    Payloads are plain dicts (``ChatCompletion.model_dump()``), so every
    accessor tolerates missing or oddly typed fields and returns an empty
    value rather than raising.
    """

    @staticmethod
    def _first_choice(payload: Dict[str, Any]) -> Dict[str, Any]:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return {}
        choice = cast(List[Any], choices)[0]
        return cast(Dict[str, Any], choice) if isinstance(choice, dict) else {}

    def _message(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        message = self._first_choice(payload).get("message")
        return cast(Dict[str, Any], message) if isinstance(message, dict) else {}

    def extract_text(self, payload: Dict[str, Any]) -> str:
        """Return the assistant text, falling back to tool-call arguments."""
        message = self._message(payload)
        content: Any = message.get("content")
        if isinstance(content, str) and content:
            return content
        if isinstance(content, list):
            # content parts: plain strings or {"type": "text", "text": ...}
            parts: List[str] = []
            for part in cast(List[Any], content):
                if isinstance(part, str):
                    parts.append(part)
                elif isinstance(part, dict):
                    text: Any = cast(Dict[str, Any], part).get("text")
                    if isinstance(text, str):
                        parts.append(text)
            if "".join(parts):
                return "".join(parts)

        tool_calls = message.get("tool_calls")
        if isinstance(tool_calls, list):
            for call in cast(List[Any], tool_calls):
                function = cast(Dict[str, Any], call).get("function") if isinstance(call, dict) else None
                if not isinstance(function, dict):
                    continue
                arguments: Any = cast(Dict[str, Any], function).get("arguments")
                if isinstance(arguments, str) and arguments.strip():
                    return arguments
        return ""

    def extract_refusal(self, payload: Dict[str, Any]) -> Optional[str]:
        refusal = self._message(payload).get("refusal")
        if isinstance(refusal, str) and refusal.strip():
            return refusal.strip()
        return None

    def extract_finish_reason(self, payload: Dict[str, Any]) -> Optional[str]:
        reason = self._first_choice(payload).get("finish_reason")
        return reason if isinstance(reason, str) else None

    def extract_usage(self, payload: Dict[str, Any]) -> Dict[str, int]:
        """Return token counts present in ``usage``; absent counts are omitted."""
        usage = payload.get("usage")
        if not isinstance(usage, dict):
            return {}
        usage_map = cast(Dict[str, Any], usage)
        return {
            key: usage_map[key]
            for key in _USAGE_KEYS
            if isinstance(usage_map.get(key), int) and not isinstance(usage_map.get(key), bool)
        }


class FileSystemService(IFileSystemService):
    """JSON persistence for verdict records."""

    def write_json(self, path: Path, data: Any) -> None:
        """Write ``data`` to ``path`` via a sibling temp file so readers never see a partial record."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)

    def read_json(self, path: Path) -> Any:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def list_files(self, directory: Path, pattern: str) -> List[Path]:
        """Return files in ``directory`` matching ``pattern``, sorted by name; empty if it does not exist."""
        if not directory.is_dir():
            return []
        return sorted(path for path in directory.glob(pattern) if path.is_file())


__all__ = [
    "TimeService",
    "ResponseParser",
    "FileSystemService",
]
