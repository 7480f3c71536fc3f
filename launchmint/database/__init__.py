from launchmint.database.launch_store import LaunchStore, MemoryLaunchStore, SqliteLaunchStore


def open_launch_store(db_path=None) -> LaunchStore:
    """SQLite-backed store when a path is configured, in-memory otherwise"""
    if db_path:
        return SqliteLaunchStore(db_path)
    return MemoryLaunchStore()


__all__ = ['LaunchStore', 'MemoryLaunchStore', 'SqliteLaunchStore', 'open_launch_store']
