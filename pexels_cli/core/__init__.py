"""
Core application engine.

The `MediaSession` owns every component for one process. It delegates
downloads to the `DownloadManager` and categorization to the `Organizer`,
both of which share the `MetadataLedger`.
"""
