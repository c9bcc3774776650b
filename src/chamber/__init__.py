"""Layered agent/command configuration — resolve where definitions live, write them back.

Layout:
    ~/.config/opencode/
    ├── opencode.json                  # User layer
    ├── agent/<name>.md                # User-scope agents (YAML frontmatter + prompt)
    └── command/<name>.md              # User-scope commands (frontmatter + template)
    <project>/
    ├── opencode.json                  # Project layer
    └── .opencode/{agent,command}/     # Project-scope documents

An optional custom layer ($OPENCODE_CONFIG) outranks both JSON layers.
"""
