"""Application layer: DTOs, repository ports, scope resolvers and use cases."""
