"""Virtual printer: CUPS backend, privileged installer and lifecycle manager."""
