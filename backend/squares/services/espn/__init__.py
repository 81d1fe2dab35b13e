"""ESPN site API adapter: game id resolution, fetch with timeout, normalization."""
