"""HTTP layer: dependencies, error handlers and versioned routers."""
