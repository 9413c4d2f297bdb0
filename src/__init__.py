"""nfswatch: polling change watcher for network-mounted directory trees."""
