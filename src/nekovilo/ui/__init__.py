"""Interactive operator console for the running bot."""
