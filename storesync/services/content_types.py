"""
Content type classification for File Search uploads.

Verified mapping of file extensions to MIME types accepted by the Gemini
File Search API, plus a broader set of text extensions uploaded as
text/plain. Anything else is rejected.
"""
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Union

from ..errors import UnsupportedContentType
from ..models import ContentType

FALLBACK_MIME_TYPE = "text/plain"

# Validated against the API: 36 extensions across 12 MIME types
EXTENSION_TO_MIME: Dict[str, str] = {
    # Documents
    ".pdf": "application/pdf",
    # Data
    ".xml": "application/xml",
    # Plain text
    ".txt": "text/plain",
    ".text": "text/plain",
    ".log": "text/plain",
    ".out": "text/plain",
    ".env": "text/plain",
    ".gitignore": "text/plain",
    ".gitattributes": "text/plain",
    ".dockerignore": "text/plain",
    # Markup
    ".html": "text/html",
    ".htm": "text/html",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".mdown": "text/markdown",
    ".mkd": "text/markdown",
    # Programming languages
    ".c": "text/x-c",
    ".h": "text/x-c",
    ".java": "text/x-java",
    ".kt": "text/x-kotlin",
    ".kts": "text/x-kotlin",
    ".go": "text/x-go",
    ".py": "text/x-python",
    ".pyw": "text/x-python",
    ".pyx": "text/x-python",
    ".pyi": "text/x-python",
    ".pl": "text/x-perl",
    ".pm": "text/x-perl",
    ".t": "text/x-perl",
    ".pod": "text/x-perl",
    ".lua": "text/x-lua",
    ".erl": "text/x-erlang",
    ".hrl": "text/x-erlang",
    ".tcl": "text/x-tcl",
    # Documentation
    ".bib": "text/x-bibtex",
    # Specialized
    ".diff": "text/x-diff",
}

TEXT_FALLBACK_EXTENSIONS: FrozenSet[str] = frozenset({
    # JavaScript / TypeScript
    ".js", ".mjs", ".cjs", ".jsx",
    ".ts", ".mts", ".cts", ".tsx",
    ".json", ".jsonc", ".json5",
    # Web
    ".css", ".scss", ".sass", ".less", ".styl",
    ".vue", ".svelte", ".astro",
    # Shell and scripting
    ".sh", ".bash", ".zsh", ".fish", ".ksh", ".csh", ".tcsh",
    ".bat", ".cmd", ".ps1", ".psm1",
    # Configuration
    ".yaml", ".yml", ".toml", ".ini", ".cfg", ".conf",
    ".properties", ".editorconfig", ".prettierrc", ".eslintrc",
    ".babelrc", ".npmrc", ".nvmrc", ".browserslistrc",
    # Build and package files
    ".makefile", ".cmake", ".gradle", ".sbt",
    ".gemfile", ".podfile", ".cartfile",
    # Other languages
    ".rb", ".rake", ".gemspec",
    ".php", ".phtml",
    ".rs", ".rlib",
    ".swift",
    ".scala",
    ".clj", ".cljs", ".cljc", ".edn",
    ".ex", ".exs",
    ".hs", ".lhs",
    ".ml", ".mli",
    ".fs", ".fsx", ".fsi",
    ".r", ".rmd",
    ".jl",
    ".nim", ".nimble",
    ".zig",
    ".v", ".sv", ".svh",
    ".vhd", ".vhdl",
    ".asm", ".s",
    ".f", ".f90", ".f95", ".for",
    ".pas", ".pp",
    ".d",
    ".ada", ".adb", ".ads",
    ".cob", ".cbl",
    ".pro", ".p",
    ".lisp", ".lsp", ".cl",
    ".scm", ".ss", ".rkt",
    ".groovy", ".gvy",
    ".dart",
    ".cr",
    ".coffee",
    ".elm",
    ".purs",
    ".hx",
    ".sol",
    # Documentation and data
    ".rst", ".asciidoc", ".adoc", ".asc",
    ".tex", ".latex", ".sty", ".cls",
    ".csv", ".tsv",
    ".sql",
    ".graphql", ".gql",
    # Lock files and manifests
    ".lock", ".sum",
    # Containers
    ".dockerfile",
    # Misc
    ".patch",
    ".awk",
    ".sed",
    ".vim", ".vimrc",
    ".htaccess", ".htpasswd",
    ".nix",
})


def normalize_extension(extension: str) -> str:
    """Lowercase an extension and make sure it has exactly one leading dot."""
    ext = extension.strip().lower()
    if not ext:
        return ""
    return ext if ext.startswith(".") else f".{ext}"


def extension_of(path: Union[str, Path]) -> str:
    """Lowercased suffix; dotfiles such as ".env" have none."""
    return normalize_extension(Path(path).suffix)


def is_extension_supported(extension: str) -> bool:
    """True if the extension has a verified MIME type."""
    return normalize_extension(extension) in EXTENSION_TO_MIME


def is_extension_supported_with_fallback(extension: str) -> bool:
    """True if the extension is verified or a known text type."""
    ext = normalize_extension(extension)
    return ext in EXTENSION_TO_MIME or ext in TEXT_FALLBACK_EXTENSIONS


def get_mime_type(path: Union[str, Path]) -> Optional[str]:
    """Verified MIME type for a path, or None."""
    return EXTENSION_TO_MIME.get(extension_of(path))


def get_supported_extensions() -> List[str]:
    return list(EXTENSION_TO_MIME)


def get_fallback_extensions() -> List[str]:
    return sorted(TEXT_FALLBACK_EXTENSIONS)


class ContentClassifier:
    """Resolves a file path to a transfer content type."""

    @staticmethod
    def classify(path: Union[str, Path]) -> ContentType:
        """
        Classify a file by extension.

        Args:
            path: File path (only the extension is looked at)

        Returns:
            ContentType with is_fallback=False for verified types and
            is_fallback=True for known text types sent as text/plain

        Raises:
            UnsupportedContentType: if the extension is in neither table
        """
        ext = extension_of(path)

        mime_type = EXTENSION_TO_MIME.get(ext)
        if mime_type:
            return ContentType(mime_type=mime_type, is_fallback=False)

        if ext in TEXT_FALLBACK_EXTENSIONS:
            return ContentType(mime_type=FALLBACK_MIME_TYPE, is_fallback=True)

        raise UnsupportedContentType(str(path), ext)
