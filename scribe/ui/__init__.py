"""Terminal rendering and input for the tutoring session."""
