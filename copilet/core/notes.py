"""
Companion note generated next to a downloaded plugin.

Plugin READMEs document their slash commands as ``/{plugin-id}:{name}``;
once installed locally they are invoked as ``/{name}``. The note lists the
local invocation names.
"""

import re
from typing import List


NOTE_FILENAME = "NOTE.COPILET.md"
PLACEHOLDER = "| /SLASH-COMMAND-NOTE |"

NOTE_TEMPLATE = (
    "# NOTE\n"
    "\n"
    "This plugin was downloaded by Copilet. Its slash commands are available\n"
    "without the plugin prefix:\n"
    "\n"
    "| Command |\n"
    "|---------|\n"
    f"{PLACEHOLDER}\n"
)


def extract_slash_commands(readme: str, plugin_id: str) -> List[str]:
    """Find table cells like `` `/plugin-id:command` `` and return the commands."""

    pattern = re.compile(r"\|\s*`/" + re.escape(plugin_id) + r":([^`]+)`\s*\|")
    commands = []
    for line in readme.splitlines():
        commands.extend(match.group(1) for match in pattern.finditer(line))
    return commands


def generate_note_content(readme: str, plugin_id: str, template: str = NOTE_TEMPLATE) -> str:
    commands = extract_slash_commands(readme, plugin_id)
    if not commands:
        return template.replace(PLACEHOLDER, "| (none) |")

    rows = "\n".join(f"| `/{command}` |" for command in commands)
    return template.replace(PLACEHOLDER, rows)


__all__ = ["NOTE_FILENAME", "extract_slash_commands", "generate_note_content"]
