"""FastAPI dependency injection for RagTrace.

Routes depend on these callables so tests can swap them through
``app.dependency_overrides``.
"""

from ....composition import container
from ....core.ports.retrieval_port import RetrievalPort
from ....core.ports.run_store_port import RunStorePort
from ....core.services.pipeline import AskPipeline


def get_pipeline() -> AskPipeline:
    """Get or create the AskPipeline singleton."""
    return container.get_pipeline()


def get_run_store() -> RunStorePort:
    """Get or create the run store singleton."""
    return container.get_run_store()


def get_retriever() -> RetrievalPort:
    """Get or create the vector store retriever singleton."""
    return container.get_retriever()
