from .tracing import add_span_attributes, get_tracer, setup_tracing


__all__ = ["add_span_attributes", "get_tracer", "setup_tracing"]
