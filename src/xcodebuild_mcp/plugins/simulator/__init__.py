"""iOS simulator tools: list, boot, build for and launch apps on simulators."""
