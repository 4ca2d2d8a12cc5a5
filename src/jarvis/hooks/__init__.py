"""Host hook entry points and the JSON helpers they share."""
