"""Push notification dispatch through the GCM gateway."""
