"""Marker comment engine.

Finds ``AI!``/``AI?``/``AI:`` comments in source files, groups them into
blocks, deduplicates them by fingerprint and renders them as prompts.

Pipeline: find_candidate_files() → extract_comments() → cache.claim() →
render_batch_prompt()
"""

from clawde.comments.cache import ProcessedCommentCache
from clawde.comments.dispatcher import CommentProcessor, PendingPrompt, PromptDispatcher
from clawde.comments.extractor import extract_comments, extract_comments_from_file
from clawde.comments.patterns import (
    CommentPattern,
    get_comment_pattern,
    is_supported,
    supported_extensions,
)
from clawde.comments.prompts import render_batch_prompt, render_prompt
from clawde.comments.search import find_candidate_files
from clawde.comments.types import ActionType, CommentRecord, compute_fingerprint

__all__ = [
    "extract_comments",
    "extract_comments_from_file",
    "find_candidate_files",
    "render_prompt",
    "render_batch_prompt",
    "compute_fingerprint",
    "get_comment_pattern",
    "is_supported",
    "supported_extensions",
    "ActionType",
    "CommentPattern",
    "CommentProcessor",
    "CommentRecord",
    "PendingPrompt",
    "ProcessedCommentCache",
    "PromptDispatcher",
]
