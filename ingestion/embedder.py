# ingestion/embedder.py
"""
Vector store access and chunk indexing.

Chunks arrive pre-split by an external chunker as records with
content, source_url, title and section. The collection uses cosine
distance so similarity can be reported as 1 - distance.
"""

from typing import Iterable, Mapping, Optional

from langchain_chroma import Chroma
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings

from config import CHROMA_COLLECTION, CHROMA_PERSIST_DIRECTORY, EMBEDDING_MODEL
from utils.logger import get_retrieval_logger

logger = get_retrieval_logger()

COLLECTION_METADATA = {"hnsw:space": "cosine"}


def get_embeddings(model: str = EMBEDDING_MODEL) -> Embeddings:
    """Get OpenAI embeddings instance."""
    return OpenAIEmbeddings(model=model)


def get_vectorstore(
    collection_name: str = CHROMA_COLLECTION,
    persist_directory: Optional[str] = CHROMA_PERSIST_DIRECTORY,
    embedding: Optional[Embeddings] = None,
) -> Chroma:
    """Open the chunk collection; persist_directory=None keeps it in memory."""
    return Chroma(
        collection_name=collection_name,
        embedding_function=embedding or get_embeddings(),
        persist_directory=persist_directory,
        collection_metadata=COLLECTION_METADATA,
    )


def chunk_to_document(chunk: Mapping) -> Document:
    # Chroma metadata values cannot be None
    return Document(
        page_content=chunk["content"],
        metadata={
            "source_url": chunk.get("source_url") or "",
            "title": chunk.get("title") or "",
            "section": chunk.get("section") or "",
        },
    )


def index_chunks(chunks: Iterable[Mapping], vectorstore: Chroma) -> int:
    """Embed and store chunk records. Returns the number stored."""
    documents = [chunk_to_document(chunk) for chunk in chunks if (chunk.get("content") or "").strip()]
    if not documents:
        logger.warning("No non-empty chunks to index")
        return 0

    vectorstore.add_documents(documents)
    logger.info(f"Indexed {len(documents)} chunks into '{vectorstore._collection.name}'")
    return len(documents)


def collection_exists(vectorstore: Chroma) -> bool:
    """Check if the collection holds any chunks."""
    return vectorstore._collection.count() > 0


def delete_collection(vectorstore: Chroma) -> None:
    """Delete the collection from the vectorstore."""
    vectorstore.delete_collection()
    logger.info("Chunk collection deleted")
