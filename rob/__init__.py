"""
rob: build orchestrator for projects embedded in a site.

Usage:
    rob init                  # Create the global config
    rob add project URL       # Track a project
    rob discover              # Link local checkouts by their tag files
    rob build [PROJECT]       # Rebuild projects that changed
    rob build --root-server   # Rebuild the site server
    rob run                   # Run the site server
    rob watch                 # Rebuild local projects on change
"""

__version__ = "0.1.0"
