# ragcode

`ragcode` is the indexing side of a retrieval system for codebases. It
detects the language of source files, cuts them into semantic chunks,
embeds the chunks through an Ollama server, hands them to a store you
supply, and records how the chunks relate to each other in a dependency
graph.

## Modules

- `ragcode.go_parser`
  - `detect_language(file_path)` maps a file extension to a language name
    (`"go"`, `"python"`, `"markdown"`, `"config"`, `"web"`, ...) or
    `"unknown"`.
  - `GoParser().parse(file_path)` returns one `CodeChunk` per top-level Go
    declaration: functions, methods (metadata `receiver`), type blocks
    (metadata `types` and `name`), imports (metadata `imports`) and other
    declarations. Function chunks carry the calls they make in metadata
    `calls` (`helper`, `fmt.Println`, ...). Malformed Go raises an
    `AppError` of type `external`.
- `ragcode.regex_parser`
  - `RegexParser().parse(file_path)` splits a file at top-level declarations
    found by per-language patterns (Python, JavaScript, TypeScript, Java,
    Kotlin, Swift, Rust, C, C++, C#, Scala, Ruby, PHP, shell, Lua, Dart,
    Haskell, Elixir, Clojure). Each chunk gets a `name` in its metadata. When
    nothing matches it falls back to line windows.
  - `GenericParser(chunk_size=50, overlap=5).parse(file_path)` splits any
    text into overlapping line windows, skipping blank ones.
  - Helpers: `generic_chunk`, `extract_name`, `chunk_type_for_line`,
    `chunk_id`.
- `ragcode.multi_parser.MultiParser().parse(file_path)` sends Go files to
  `GoParser`, Markdown/config/SQL/web files to `GenericParser`, other known
  languages to `RegexParser`, and returns `[]` for unknown files.
- `ragcode.chunker.SemanticChunker(max_size, overlap)`
  - `chunk(chunks, max_size=0)` merges each comment chunk with the function,
    class or method that follows it, fills in `chunk_type`, `language`,
    `file_path` and `symbol_name` metadata, assigns deterministic IDs, and
    splits chunks longer than `max_size` characters at a block end, blank
    line or late newline. Each sub-chunk after the first starts with
    `// ...context...` and the last `overlap` characters of the previous one.
  - `merge_related_chunks(chunks)` and `generate_chunk_id(chunk)` are
    available on their own.
- `ragcode.embeddings`
  - `OllamaEmbedder(base_url, model, num_workers=4, max_concurrent=16,
    timeout=30.0)` posts to `<base_url>/api/embeddings`. `embed(text)`
    returns one vector; `embed_batch(texts)` embeds in parallel and keeps the
    input order. At most `max_concurrent` requests run at once.
  - `truncate_for_embedding(text)` replaces invalid characters and cuts the
    text to 384 characters.
- `ragcode.graph` — `Graph` with `Node`, `Edge` and `RelationType`
  (`import`, `call`, `define`): `add_node`, `add_edge`, `get_node`,
  `get_nodes_by_name`, `get_related`, `get_all_related`, `get_incoming`,
  `get_parent_files`, `clear`, `stats`. It is safe to use from several
  threads.
- `ragcode.graph_builder.Builder(graph=None)` — `build(chunks)` adds a node
  per chunk plus import and call edges from chunk metadata and define edges
  from a type to its methods; `rebuild(chunks)` clears the graph first.
- `ragcode.hierarchy.HierarchicalFilter(max_results_per_file=3)` —
  `process(results)` keeps the best results of each file and orders all of
  them by `relevance_score`.
- `ragcode.indexer`
  - `Indexer(parser, chunker, embedder, store, keyword_indexer=None,
    graph=None, num_workers=0, config=None)` runs the pipeline.
    `index(path)` handles a file or a directory and resets the metrics;
    `index_file(path)` skips unknown file types and files whose MD5 has not
    changed, embeds and stores chunks in batches (retrying stores with
    back-off), updates the keyword index and graph when given;
    `index_directory(path)` walks the tree with worker threads, skipping
    hidden, `node_modules` and `vendor` directories, and logs failures of
    single files instead of raising; `delete_file(path)`, `get_job(job_id)`
    and `metrics()` complete it.
  - `IndexerConfig` holds batch size, retry count and worker count;
    `IndexMetrics` counts indexed, skipped and failed files, created chunks
    and retries; `hash_file(path)` returns a file's MD5.
  - The store must provide `store(chunks)` and `delete(file_path)`; a keyword
    indexer must provide `add_to_inverted_index(chunks)`.
- `ragcode.watcher`
  - `Watcher(handler, debounce=0.5)` watches directory trees added with
    `add_path(path)` and calls `handler(path, FileEvent)` once changes to a
    file have settled. `start(stop_event=None)` blocks until the event is
    set or `stop()` is called. It can be used as a context manager.
- `ragcode.domain` — `CodeChunk` (with `to_dict`/`from_dict`),
  `SearchQuery.from_dict`, `SearchResult.to_dict`, `RetrievalContext`,
  `IndexingJob`, `ChunkType`, `JobStatus`.
- `ragcode.errors` — `AppError` with an `ErrorType` (`validation`,
  `not_found`, `internal`, `external`, `unauthorized`, `conflict`),
  `with_context`, and `new_error`, `wrap`, `is_error_type`,
  `validation_error`, `not_found_error`, `internal_error`, `external_error`.

## Configuration

`ragcode.config.load()` loads `./.env` when present and returns a `Config`
read from the environment:

| Variable | Default |
| --- | --- |
| `OLLAMA_URL` | `http://localhost:11434` |
| `EMBEDDING_MODEL` | `all-minilm` |
| `LLM_MODEL` | `llama3.2:1b` |
| `VECTOR_STORE_URL` | `http://localhost:6333` |
| `COLLECTION_NAME` | `code_chunks` |
| `TARGET_CODEBASE` | empty |
| `SERVER_PORT` | `8080` |
| `LOG_LEVEL` / `LOG_FORMAT` | `debug` / `json` |
| `REDIS_URL` / `REDIS_DB` / `REDIS_PASSWORD` | `localhost:6379` / `0` / empty |
| `HYBRID_ENABLED` / `HYBRID_VECTOR_WEIGHT` | `true` / `0.7` |
| `FUSION_STRATEGY` | `rrf` |
| `BM25_K1` / `BM25_B` | `1.2` / `0.75` |
| `NUM_WORKERS` | twice the CPU count, at least 4 |
| `EMBEDDING_WORKERS` / `MAX_CONCURRENT_EMBEDDINGS` | `8` / `16` |
| `PROMPT_TEMPLATE` | `professional` |
| `USE_MMR` / `MMR_LAMBDA` | `true` / `0.7` |

`max_chunk_size` is fixed at 512 and `chunk_overlap` at 50. Booleans are
true only for the exact value `true`.

## Example

```python
from ragcode.config import load
from ragcode.multi_parser import MultiParser
from ragcode.chunker import SemanticChunker
from ragcode.graph_builder import Builder

cfg = load()

chunks = MultiParser().parse("service/handlers.go")
pieces = SemanticChunker(cfg.max_chunk_size, cfg.chunk_overlap).chunk(chunks)

graph = Builder().build(pieces)
print(graph.stats())
```

## What the package does not do

`ragcode` covers indexing only. It has no command-line program, no HTTP
server, no query answering or answer generation, no retrieval or ranking
beyond `HierarchicalFilter`, and no storage of its own: the vector store and
keyword index are objects you pass to `Indexer`. Settings in `Config` such as
the vector store URL, Redis settings, fusion strategy, BM25 parameters,
prompt template and MMR options are read but not used by anything in the
package.

## Tests

```
pip install -e .[test]
pytest
```