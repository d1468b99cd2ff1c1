"""On-demand resolution and bundling of npm packages for a UI5 development server."""

__version__ = "0.1.0"
