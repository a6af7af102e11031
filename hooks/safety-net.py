#!/usr/bin/env -S uv run
# /// script
# requires-python = ">=3.10"
# ///
"""Safety Net -- blocks destructive shell commands before a coding agent runs them.

PreToolUse hook entry point. Pass the agent flavor as the first argument:

  safety-net.py --claude-code    Claude Code PreToolUse (default)
  safety-net.py --gemini-cli     Gemini CLI BeforeTool
  safety-net.py --copilot-cli    Copilot CLI preToolUse

Reads the hook JSON payload from stdin and prints a deny decision when the
command is blocked. See ``safety-net.py --help`` for the other options.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), os.pardir))

from safety_net.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:] or ["--claude-code"]))
