"""
docstore — Services Layer
==========================

What:  The storage core: the components that own state and side effects.
How:   StorageService composes the other three and is the only one the
       command surface talks to.

Service Inventory:
    - PersistentStore: SQLite-backed CRUD for the four entity kinds
    - FileVault:       filesystem side effects (files, listings, backups)
    - DocumentCache:   bounded LRU cache of Document values
    - StorageService:  façade enforcing cache coherence and backup-before-delete
    - locked():        timed lock acquisition shared by the service and the cache
"""
