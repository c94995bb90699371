"""Constants used throughout codestate."""

import os
from pathlib import Path

# Home directory layout
HOME_ENV_VAR = "CODESTATE_HOME"
ENCRYPTION_KEY_ENV_VAR = "CODESTATE_ENCRYPTION_KEY"
HOME_DIR_NAME = ".codestate"
CONFIG_FILE_NAME = "config.json"
DATA_DIR_NAME = "data"


def default_home_dir() -> Path:
    """Return the codestate home directory, honouring CODESTATE_HOME."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / HOME_DIR_NAME


# Storage layout under the data directory
INDEX_FILE_NAME = "index.json"
INDEX_VERSION = "1.0.0"
DOCUMENT_SUFFIX = ".json"
SESSIONS_DIR = "sessions"
SCRIPTS_DIR = "scripts"
TERMINALS_DIR = "terminals"
LOCKS_DIR = ".locks"

# Encryption
ENCRYPTION_HEADER = "ENCRYPTED_v1"
PBKDF2_ITERATIONS = 100_000
SALT_LENGTH = 16

# Timeout values (seconds)
COMMAND_TIMEOUT = 30
SPAWN_TIMEOUT = 5
SPAWN_SETTLE = 0.5
IDE_TIMEOUT = 10
GIT_TIMEOUT = 10
COMMAND_PAUSE = 1.0
LOCK_TIMEOUT = 5.0
LOCK_STALE_AFTER = 30.0

# Terminal suffixes appended in new-terminals mode
CLOSE_TERMINAL_SUFFIX = 'echo "Script execution completed. Closing terminal..." && sleep 2 && exit'
KEEP_TERMINAL_SUFFIX = "echo 'Script execution completed. Terminal will remain open.'"

# Git
STASH_PREFIX = "codestate-stash"

# Linux terminal emulators, in order of preference
LINUX_TERMINALS = [
    "gnome-terminal",
    "xterm",
    "konsole",
    "xfce4-terminal",
    "mate-terminal",
    "tilix",
    "terminator",
    "alacritty",
    "kitty",
]

# IDE launch definitions: name -> (command, base args)
IDE_DEFINITIONS = {
    "vscode": ("code", ["--new-window"]),
    "code": ("code", ["--new-window"]),
    "cursor": ("cursor", ["--new-window"]),
    "webstorm": ("webstorm", []),
    "intellij": ("idea", []),
    "sublime": ("subl", []),
    "vim": ("vim", []),
    "neovim": ("nvim", []),
}

# Export
EXPORT_DIR_PREFIX = "codestate"
