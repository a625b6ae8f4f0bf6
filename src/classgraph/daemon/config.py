"""
Configuration for the editor backend.
"""

# === Server Configuration ===
SERVER_CONFIG = {
    "host": "localhost",
    "port": 5051,
    "editor_query": "editor",  # ws://host:port/?editor=1 marks an editor connection
    "watch": True,             # Watch the class directory for external edits
    "shutdown_timeout": 5.0,
}
