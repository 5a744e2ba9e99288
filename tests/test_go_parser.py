import pytest

from ragcode.domain import ChunkType
from ragcode.errors import AppError, ErrorType
from ragcode.go_parser import GoParser, detect_language


def write_go(tmp_path, code, name="test.go"):
    path = tmp_path / name
    path.write_text(code)
    return str(path)


def test_extract_imports(tmp_path):
    code = """package main

import (
\t"fmt"
\t"strings"
\t"github.com/example/pkg"
)

func main() {
\tfmt.Println("hello")
}
"""
    chunks = GoParser().parse(write_go(tmp_path, code))
    import_chunk = next(c for c in chunks if c.chunk_type == ChunkType.IMPORT)
    imports = [i.strip() for i in import_chunk.metadata["imports"].split(",")]
    assert len(imports) == 3
    assert set(imports) == {"fmt", "strings", "github.com/example/pkg"}
    assert import_chunk.start_line == 3
    assert import_chunk.end_line == 7


def test_extract_function_calls(tmp_path):
    code = """package main

import "fmt"

func helper() {
\tfmt.Println("helper")
}

func main() {
\thelper()
\tfmt.Println("main")
\tresult := process()
}

func process() string {
\treturn "done"
}
"""
    chunks = GoParser().parse(write_go(tmp_path, code))
    main_chunk = next(
        c for c in chunks if c.chunk_type == ChunkType.FUNCTION and c.metadata["name"] == "main"
    )
    calls = {c.strip() for c in main_chunk.metadata["calls"].split(",")}
    assert len(calls) >= 2
    for expected in ("helper", "fmt.Println", "process"):
        assert expected in calls
    assert main_chunk.start_line == 9
    assert main_chunk.end_line == 13
    assert main_chunk.content.startswith("func main() {")
    assert main_chunk.content.endswith("}")
    assert main_chunk.language == "go"


def test_extract_method_receiver(tmp_path):
    code = """package main

type MyStruct struct {
\tvalue int
}

func (m *MyStruct) Method1() {
\tm.value = 10
}

func (m MyStruct) Method2() int {
\treturn m.value
}
"""
    chunks = GoParser().parse(write_go(tmp_path, code))
    methods = [c for c in chunks if c.chunk_type == ChunkType.METHOD]
    assert len(methods) == 2
    assert [m.metadata["receiver"] for m in methods] == ["MyStruct", "MyStruct"]
    assert [m.metadata["name"] for m in methods] == ["Method1", "Method2"]


def test_extract_type_names(tmp_path):
    code = """package main

type (
\tUser struct {
\t\tName string
\t\tAge  int
\t}
\tStatus int
)
"""
    chunks = GoParser().parse(write_go(tmp_path, code))
    type_chunk = next(c for c in chunks if c.chunk_type == ChunkType.CLASS)
    assert "User" in type_chunk.metadata["types"]
    assert "Status" in type_chunk.metadata["types"]
    assert type_chunk.metadata["name"] == "User"
    assert (type_chunk.start_line, type_chunk.end_line) == (3, 9)


def test_generic_receiver_has_no_receiver_name(tmp_path):
    code = """package main

type List[T any] struct{}

func (l *List[T]) Len() int { return 0 }
"""
    chunks = GoParser().parse(write_go(tmp_path, code))
    method = next(c for c in chunks if c.chunk_type == ChunkType.METHOD)
    assert method.metadata["name"] == "Len"
    assert "receiver" not in method.metadata


def test_func_types_and_literals_stay_in_one_declaration(tmp_path):
    code = """package main

type Handler func(int) error

var callback = func() {
\tprintln("x")
}

const limit = 3
"""
    chunks = GoParser().parse(write_go(tmp_path, code))
    assert [c.chunk_type for c in chunks] == [ChunkType.CLASS, ChunkType.OTHER, ChunkType.OTHER]
    assert chunks[0].metadata == {"types": "Handler", "name": "Handler"}
    assert (chunks[1].start_line, chunks[1].end_line) == (5, 7)
    assert chunks[2].metadata == {}


def test_braces_inside_strings_and_comments(tmp_path):
    code = """package main

func f() string {
\t// } not a brace
\ts := `{
}`
\treturn "}{" + s
}
"""
    chunks = GoParser().parse(write_go(tmp_path, code))
    assert len(chunks) == 1
    assert (chunks[0].start_line, chunks[0].end_line) == (3, 8)


def test_call_extraction_skips_chains_and_conversions(tmp_path):
    code = """package main

func f(s string) {
\ta.b.c()
\tx := []byte(s)
\t_ = len(x)
}
"""
    chunks = GoParser().parse(write_go(tmp_path, code))
    assert chunks[0].metadata["calls"] == "len"


def test_function_without_calls_has_no_calls_metadata(tmp_path):
    code = "package main\n\nfunc empty() {}\n"
    chunks = GoParser().parse(write_go(tmp_path, code))
    assert chunks[0].metadata == {"name": "empty"}


@pytest.mark.parametrize(
    "code",
    [
        "package main\n\nfunc main() {\n",
        "func main() {}\n",
        "",
        "package main\n\nx := 1\n",
        'package main\n\nvar s = "unterminated\n',
    ],
)
def test_syntax_errors_raise(tmp_path, code):
    with pytest.raises(AppError) as info:
        GoParser().parse(write_go(tmp_path, code))
    assert info.value.error_type == ErrorType.EXTERNAL
    assert info.value.message == "failed to parse Go file"


def test_missing_file_raises(tmp_path):
    with pytest.raises(AppError) as info:
        GoParser().parse(str(tmp_path / "missing.go"))
    assert info.value.error_type == ErrorType.EXTERNAL
    assert info.value.message == "failed to read file"


@pytest.mark.parametrize(
    "file_path, expected",
    [
        ("/path/to/file.go", "go"),
        ("/path/to/file.py", "python"),
        ("/path/to/file.js", "javascript"),
        ("/path/to/file.ts", "typescript"),
        ("/path/to/file.java", "java"),
        ("/path/to/file.cpp", "cpp"),
        ("/path/to/file.rs", "rust"),
        ("/path/to/file.lua", "lua"),
        ("/path/to/file.dart", "dart"),
        ("/path/to/file.hs", "haskell"),
        ("/path/to/file.ex", "elixir"),
        ("/path/to/file.clj", "clojure"),
        ("main.go", "go"),
        ("script.py", "python"),
        ("types.pyi", "python"),
        ("app.jsx", "javascript"),
        ("app.mjs", "javascript"),
        ("app.tsx", "typescript"),
        ("Main.kt", "kotlin"),
        ("Main.kts", "kotlin"),
        ("Main.scala", "scala"),
        ("main.c", "c"),
        ("main.h", "c"),
        ("main.cc", "cpp"),
        ("main.hpp", "cpp"),
        ("main.cs", "csharp"),
        ("app.rb", "ruby"),
        ("app.php", "php"),
        ("run.sh", "shell"),
        ("run.bash", "shell"),
        ("App.swift", "swift"),
        ("README.md", "markdown"),
        ("README.rst", "markdown"),
        ("notes.txt", "markdown"),
        ("config.json", "config"),
        ("config.yaml", "config"),
        ("config.yml", "config"),
        ("config.toml", "config"),
        ("schema.sql", "sql"),
        ("index.html", "web"),
        ("style.css", "web"),
        ("style.scss", "web"),
        ("App.vue", "web"),
        ("App.svelte", "web"),
        ("binary.exe", "unknown"),
        ("archive.zip", "unknown"),
        ("MAIN.GO", "go"),
        (".env", "config"),
        ("Makefile", "unknown"),
    ],
)
def test_detect_language(file_path, expected):
    assert detect_language(file_path) == expected