import fnmatch

CODE_EXTENSIONS = {
    "js": "JavaScript",
    "jsx": "React",
    "mjs": "JavaScript",
    "cjs": "JavaScript",
    "ts": "TypeScript",
    "tsx": "React TypeScript",
    "py": "Python",
    "java": "Java",
    "css": "CSS",
    "scss": "SCSS",
    "html": "HTML",
    "htm": "HTML",
    "json": "JSON",
    "xml": "XML",
    "yaml": "YAML",
    "yml": "YAML",
}


def extension(file_name: str) -> str:
    name = file_name.rsplit("/", 1)[-1]
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def is_code_file(file_name: str) -> bool:
    return extension(file_name) in CODE_EXTENSIONS


def language(file_name: str) -> str:
    ext = extension(file_name)
    return CODE_EXTENSIONS.get(ext, ext.upper() or "Unknown")


def is_excluded(path: str, patterns: list[str]) -> bool:
    """Return True if path matches any exclude pattern.

    Supports:
    - fnmatch globs on the full key: "alice/generated/*.js"
    - fnmatch globs on the basename: "*.min.js"
    - Directory names/prefixes: "vendor/" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(path, pattern):
            return True
        if fnmatch.fnmatch(path.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if path.startswith(prefix) or ("/" + prefix) in path:
            return True
    return False
