"""Languages the tutor can explain, with file-extension detection and display names."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath


class SupportedLanguage(str, Enum):
    PYTHON = "python"
    CPP = "cpp"
    C = "c"
    JAVA = "java"
    RUST = "rust"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    GO = "go"
    HTML = "html"
    CSS = "css"
    JSON = "json"
    MARKDOWN = "markdown"
    SHELL = "shell"
    LUA = "lua"
    UNKNOWN = "unknown"


LANGUAGE_EXTENSIONS: dict[str, SupportedLanguage] = {
    ".py": SupportedLanguage.PYTHON,
    ".pyw": SupportedLanguage.PYTHON,
    ".cpp": SupportedLanguage.CPP,
    ".hpp": SupportedLanguage.CPP,
    ".cxx": SupportedLanguage.CPP,
    ".hxx": SupportedLanguage.CPP,
    ".cc": SupportedLanguage.CPP,
    ".hh": SupportedLanguage.CPP,
    ".c": SupportedLanguage.C,
    ".h": SupportedLanguage.C,
    ".java": SupportedLanguage.JAVA,
    ".rs": SupportedLanguage.RUST,
    ".js": SupportedLanguage.JAVASCRIPT,
    ".jsx": SupportedLanguage.JAVASCRIPT,
    ".mjs": SupportedLanguage.JAVASCRIPT,
    ".ts": SupportedLanguage.TYPESCRIPT,
    ".tsx": SupportedLanguage.TYPESCRIPT,
    ".go": SupportedLanguage.GO,
    ".html": SupportedLanguage.HTML,
    ".htm": SupportedLanguage.HTML,
    ".css": SupportedLanguage.CSS,
    ".json": SupportedLanguage.JSON,
    ".md": SupportedLanguage.MARKDOWN,
    ".markdown": SupportedLanguage.MARKDOWN,
    ".sh": SupportedLanguage.SHELL,
    ".bash": SupportedLanguage.SHELL,
    ".zsh": SupportedLanguage.SHELL,
    ".lua": SupportedLanguage.LUA,
}

LANGUAGE_DISPLAY_NAMES: dict[SupportedLanguage, str] = {
    SupportedLanguage.PYTHON: "Python",
    SupportedLanguage.CPP: "C++",
    SupportedLanguage.C: "C",
    SupportedLanguage.JAVA: "Java",
    SupportedLanguage.RUST: "Rust",
    SupportedLanguage.JAVASCRIPT: "JavaScript",
    SupportedLanguage.TYPESCRIPT: "TypeScript",
    SupportedLanguage.GO: "Go",
    SupportedLanguage.HTML: "HTML",
    SupportedLanguage.CSS: "CSS",
    SupportedLanguage.JSON: "JSON",
    SupportedLanguage.MARKDOWN: "Markdown",
    SupportedLanguage.SHELL: "Shell Script",
    SupportedLanguage.LUA: "Lua",
    SupportedLanguage.UNKNOWN: "Unknown Language",
}

ACCEPTED_FILE_EXTENSIONS = ",".join(LANGUAGE_EXTENSIONS)


def detect_language(filename: str) -> SupportedLanguage:
    suffix = PurePath(str(filename or "")).suffix.lower()
    return LANGUAGE_EXTENSIONS.get(suffix, SupportedLanguage.UNKNOWN)


def display_name(language: SupportedLanguage) -> str:
    return LANGUAGE_DISPLAY_NAMES.get(language, "the specified language")


def selectable_languages() -> list[dict]:
    return [
        {"value": lang.value, "label": LANGUAGE_DISPLAY_NAMES[lang]}
        for lang in SupportedLanguage
        if lang is not SupportedLanguage.UNKNOWN
    ]
