[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "ragcode"
version = "1.0.0"
description = "Indexing building blocks for retrieval over source code: language detection, parsing, chunking, Ollama embeddings, dependency graphs, incremental indexing and file watching."
requires-python = ">=3.10"
dependencies = [
    "python-dotenv",
    "watchdog",
]
keywords = [
    "rag",
    "retrieval",
    "code-search",
    "embeddings",
    "ollama",
    "indexing",
    "chunking",
    "dependency-graph",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Text Processing :: Indexing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.setuptools.packages.find]
include = ["ragcode*"]

[tool.pytest.ini_options]
addopts = "-ra"
