"""HTTP API for the Antopolis battle subsystem."""
