"""Core math, models and optimization for bundlepriors."""
