"""codex-wrap — readable transcripts and session logs for ``codex exec --json``."""

__version__ = "0.1.0"
