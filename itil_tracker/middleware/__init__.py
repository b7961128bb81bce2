"""Request middleware: logging, timing, JWT auth, capability checks, rate limits."""
