"""HTTP inspection surface: dependencies, models and routers."""
