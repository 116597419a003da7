from .rewriter import RewrittenModule, SourceRewriter, apply_edits, relative_require

__all__ = [
    "RewrittenModule",
    "SourceRewriter",
    "apply_edits",
    "relative_require",
]
