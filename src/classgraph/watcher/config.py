"""
Configuration for the class directory synchronizer.
"""

SYNC_CONFIG = {
    "devtool_env": "CLASSGRAPH_DEVTOOL",  # Env var the default entry file reads the devtool address from
    "watch": True,  # Start a watchdog observer on initialize()
    "observer_join_timeout": 5.0,  # Seconds to wait for the observer thread on dispose()
}

MONITORING_CONFIG = {
    # File names in the class directory that never hold a class
    "ignore_patterns": [
        "test_*.py",
        "*_test.py",
        ".*",
        "_*",
        "*.tmp",
    ],
    "class_file_extension": ".py",
    "recursive": False,
}
