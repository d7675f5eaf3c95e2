"""Command-line installer for Ornithe on Minecraft clients, servers and MultiMC/PrismLauncher instances."""

__version__ = "0.1.4"