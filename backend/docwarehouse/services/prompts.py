"""Prompt templates and tag names for every generation stage.

Pure data only. Templates use ``str.format`` placeholders; literal braces
in examples are doubled.
"""

# ---------------------------------------------------------------------------
# Response tags the stages extract from model output
# ---------------------------------------------------------------------------

README_TAG = "readme"
OVERVIEW_TAG = "blog"
CLASSIFY_TAG = "classify"
SIMPLIFY_TAG = "response_file"
CATALOGUE_TAG = "documentation_structure"
DOCUMENT_TAG = "data-blog"
CHANGELOG_TAG = "changelog"

# Files looked for (in order) before a readme is generated.
README_CANDIDATES = ("README.md", "README.txt", "README")

# ---------------------------------------------------------------------------
# Repository-level stages
# ---------------------------------------------------------------------------

README_PROMPT = """You are writing the README for a software repository that does not have one.

Repository: {repository_url}
Branch: {branch}

Directory structure:
<catalogue>
{catalogue}
</catalogue>

Describe what the project is, how it is organized, how to build and run it.
Write in Markdown. Wrap the complete README in <readme></readme> tags.
"""

SIMPLIFY_CATALOGUE_PROMPT = """The file listing below is too large to plan documentation from.

Repository: {repository_url}
README:
{readme}

Listing:
<code_files>
{catalogue}
</code_files>

Keep only the files and directories that matter for understanding the
project's architecture and behavior: source code, configuration, build
files. Drop generated files, vendored code, fixtures, assets and tests.
Return the reduced listing, in the same format as the input, inside
<response_file></response_file> tags.
"""

CLASSIFY_PROMPT = """Classify the repository below into exactly one category.

Categories: {categories}

README:
{readme}

Directory structure:
{catalogue}

Answer with the category name only, as
<classify>classifyName:CATEGORY</classify>
"""

OVERVIEW_PROMPT = """Write a project overview for the repository below, for a developer who
has never seen it.

Repository: {repository_url}
Branch: {branch}
README:
{readme}

Directory structure:
{catalogue}

Cover purpose, architecture, key components and how they fit together.
Use Markdown; mermaid diagrams are welcome. Put the whole overview inside
<blog></blog> tags.
"""

# ---------------------------------------------------------------------------
# Catalogue planning (think pass, then plan pass)
# ---------------------------------------------------------------------------

CATALOGUE_THINK_PROMPT = """You are planning the documentation of a software repository.

Repository: {repository_url}
Classification: {classification}

README:
{readme}

Directory structure:
<code_files>
{catalogue}
</code_files>

Think through the project: its main subsystems, the concepts a reader must
learn first, and which files explain each topic. Do not write the final
structure yet; reason about it.
"""

CATALOGUE_PLAN_PROMPT = """Using your analysis, produce the documentation structure for the repository.

Repository: {repository_url}

Directory structure:
<code_files>
{catalogue}
</code_files>

Analysis:
<think>
{reasoning}
</think>

Return JSON only, inside <documentation_structure></documentation_structure>
tags, with this shape:

{{
  "items": [
    {{
      "name": "kebab-case-identifier",
      "title": "Human readable title",
      "prompt": "What this section must explain",
      "dependent_file": ["path/relative/to/repo.ext"],
      "children": []
    }}
  ]
}}

Sections may nest through "children". Every file path must exist in the
directory structure above.
"""

# ---------------------------------------------------------------------------
# Per-node document content
# ---------------------------------------------------------------------------

DOCUMENT_PROMPT = """Write one page of the documentation for {repository_url} (branch {branch}).

Page title: {title}
Page instructions:
{prompt}

Directory structure:
{catalogue}

Relevant source files:
{files}

Explain the topic thoroughly, referencing the source files above. Use
Markdown with mermaid diagrams where they help. Put the finished page inside
<data-blog></data-blog> tags.
"""

DOCUMENT_FILE_BLOCK = """<file path="{path}">
{content}
</file>
"""

# ---------------------------------------------------------------------------
# Changelog and mini map
# ---------------------------------------------------------------------------

CHANGELOG_PROMPT = """Summarize the recent history of {repository_url} (branch {branch}) as a changelog.

README:
{readme}

Commits, oldest first:
<git_commit>
{commits}
</git_commit>

Group related commits, describe user-visible changes, and put the result
inside <changelog></changelog> tags.
"""

CHANGELOG_COMMIT_LINE = "{date} {author}: {message}"

MINI_MAP_PROMPT = """Build a knowledge map of the repository below as a heading outline.

Repository: {repository_url}
Branch: {branch}

Directory structure:
{catalogue}

Use one line per entry, "#" repeated once per depth level, in the form
"# Title:path/to/file/or/dir". Start with a single top-level heading for the
whole project. Output the outline only.
"""
