"""
Built-in default configuration.

User configuration files are deep-merged over :data:`DEFAULT_CONFIG`, so
a file only needs to contain the keys it changes.
"""

from __future__ import annotations

from typing import Any, Dict


FILE_SELECTION_SYSTEM = (
    "You are a precise XML generator. Output ONLY the exact XML structure "
    "requested with no additional text. Each file must be on its own line "
    "inside its own <file> tag."
)

FILE_SELECTION_CONTEXT = """Analyze these git changes and select the most important files to examine:

{changes_summary}

Output MUST be valid XML with this EXACT format (indent {indent_size} spaces):
<files>
{indent}<file>path/to/file1</file>
{indent}<file>path/to/file2</file>
</files>

Rules:
1. Select {min_files}-{max_files} files that best represent the changes
2. Prioritize files with core functionality changes
3. Prefer source files over tests, lock files and generated output
4. Include both added and modified files if present
5. Use the paths exactly as listed above"""

COMMIT_SYSTEM = (
    "You are a precise XML generator creating git commit messages. Output "
    "ONLY the exact XML structure requested. The message must be a single "
    "line and the description must use bullet points. No extra text, issue "
    "numbers or PR references."
)

COMMIT_CONTEXT = """Analyze these git changes and generate a commit message.

=== Changes Summary ===
{changes_summary}

=== Detailed Changes ===
{changes_text}

Output MUST be valid XML with this EXACT format (indent {indent_size} spaces):
<commit>
{indent}<message>Brief technical summary (max {max_message_length} chars)</message>
{indent}<description>
{indent}- Technical change details
{indent}- Implementation specifics
{indent}- Impact and reasoning
{indent}</description>
</commit>

Requirements:
1. Message must be clear, concise and at most {max_message_length} characters
2. Description must use bullet points
3. Focus on technical details
4. Describe WHAT changed and WHY"""


DEFAULT_CONFIG: Dict[str, Any] = {
    "model": {
        "name": "codellama",
        "base_url": "http://localhost",
        "port": 11434,
        "request_timeout": 120,
        "top_p": 0.9,
        "max_tokens": 500,
        "file_selection_temperature": 0.2,
        "commit_temperature": 0.5,
    },
    "commit": {
        "conventional": True,
        "emoji": True,
        "max_message_length": 50,
    },
    "git": {
        "include_staged": True,
        "include_unstaged": True,
        "exclude_patterns": ["*.lock", "target/", "dist/", "node_modules/"],
    },
    "selection": {
        "min_files": 2,
        "max_files": 10,
        "prioritize_src": True,
        "exclude_tests": True,
        "min_changes": 5,
    },
    "formatting": {
        "max_diff_lines": 15,
        "preview_lines": 10,
        "summary_lines": 5,
        "indent_size": 2,
        "show_file_stats": True,
    },
    "prompts": {
        "file_selection_system": FILE_SELECTION_SYSTEM,
        "file_selection_context": FILE_SELECTION_CONTEXT,
        "commit_system": COMMIT_SYSTEM,
        "commit_context": COMMIT_CONTEXT,
    },
}
