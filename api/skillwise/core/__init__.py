"""Request context, logging, middleware, Cassandra and Redis plumbing."""
