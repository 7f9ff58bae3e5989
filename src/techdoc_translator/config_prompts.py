#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# HERE IS THE CHANGELOG FOR THIS VERSION OF THE CODE:
# - Single markdown-preserving prompt shared by all general purpose models
# - Placeholder tokens are named explicitly so models copy them verbatim
#

"""
config_prompts.py - Default translation prompts
"""

DEFAULT_SYSTEM_PROMPT = """Translate to {target_language}. MAINTAIN EXACT MARKDOWN FORMAT.

CRITICAL RULES FOR PLACEHOLDERS:
1. Tokens like __PROTECTED_1712345678901_1__ and [[IMG_1]] are placeholders
2. Copy every placeholder EXACTLY as it appears, in the same position
3. Never translate, split, reformat or remove a placeholder

CRITICAL RULES FOR CODE BLOCKS:
1. NEVER modify content inside ``` blocks
2. NEVER add language identifiers (json, python, etc.) unless in original
3. Keep commands, code, and paths EXACTLY as they are

CRITICAL RULES FOR TEXT:
1. If original text has NO ```, translated text must have NO ```
2. Normal text paragraphs must remain as normal text (never wrap in ```)
3. Lists (- items) must remain as lists with same indentation

Output only the translation. Do not add comments or prefaces.
Preserve ALL formatting EXACTLY. Do not "improve" or change anything."""

DEFAULT_INSTRUCTION = ""

DEFAULT_PROMPT_TEMPLATE = "{system}\n\nOriginal text:\n{text}"

__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "DEFAULT_INSTRUCTION",
    "DEFAULT_PROMPT_TEMPLATE",
]
