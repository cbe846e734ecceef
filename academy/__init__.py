"""Academy service: tenant/academic-year scoped cache-aside data layer and grade recording."""
