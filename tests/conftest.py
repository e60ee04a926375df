import pytest

from relay.tracing import InMemoryTracingProcessor, TraceProvider, get_trace_provider, set_trace_provider


@pytest.fixture
def tracing():
    """Install a fresh trace provider recording into memory; restore afterwards."""
    previous = get_trace_provider()
    provider = TraceProvider()
    processor = InMemoryTracingProcessor()
    provider.set_processors([processor])
    set_trace_provider(provider)
    try:
        yield processor
    finally:
        set_trace_provider(previous)
