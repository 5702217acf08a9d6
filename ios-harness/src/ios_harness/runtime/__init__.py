"""Runtime helpers that drive the simulator through external tools."""
