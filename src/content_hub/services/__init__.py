"""Business services: tenancy, repository, lifecycle, image handling and collaborator clients."""
