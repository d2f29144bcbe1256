"""
File Patterns Constants
Chua cac constants lien quan den file extensions va thu muc bi loai tru
khi dem so dong.
"""

# Thu muc bi bo qua mac dinh - build output, dependencies, tooling
DEFAULT_EXCLUDED_FOLDERS = (
    "node_modules",
    ".git",
    "dist",
    "build",
    "out",
    "bin",
    "obj",
    ".vscode",
    ".idea",
    ".vs",
    "vendor",
    "coverage",
    ".next",
    ".nuxt",
    "public/assets",
    "static/assets",
    "target",
    ".sass-cache",
    ".cache",
)

# Extensions khong phai text - luon bo qua, khong bao gio dem dong
BINARY_EXTENSIONS = frozenset(
    {
        # Executables / objects
        ".exe",
        ".dll",
        ".obj",
        ".bin",
        ".class",
        ".pyc",
        ".pyd",
        ".so",
        ".dylib",
        ".o",
        ".a",
        ".lib",
        # Images
        ".jpg",
        ".jpeg",
        ".png",
        ".gif",
        ".svg",
        ".ico",
        ".bmp",
        ".tiff",
        ".webp",
        # Media
        ".mp3",
        ".mp4",
        # Archives / documents
        ".zip",
        ".gz",
        ".tar",
        ".pdf",
        # Fonts
        ".woff",
        ".woff2",
        ".ttf",
        ".eot",
    }
)

# Source / text extensions duoc dem khi user khong override include_extensions
DEFAULT_INCLUDED_EXTENSIONS = frozenset(
    {
        ".js",
        ".jsx",
        ".ts",
        ".tsx",
        ".html",
        ".css",
        ".scss",
        ".less",
        ".vue",
        ".svelte",
        ".go",
        ".py",
        ".java",
        ".c",
        ".cpp",
        ".cc",
        ".cxx",
        ".h",
        ".hpp",
        ".cs",
        ".php",
        ".rb",
        ".rs",
        ".kt",
        ".swift",
        ".sh",
        ".bash",
        ".zsh",
        ".sql",
        ".prisma",
        ".graphql",
        ".gql",
        ".json",
        ".yaml",
        ".yml",
        ".xml",
        ".toml",
        ".ini",
        ".md",
        ".txt",
    }
)

# Ten file khong co extension nhung van can dem (lowercase)
DEFAULT_INCLUDED_FILE_NAMES = frozenset(
    {
        "dockerfile",
        "makefile",
        ".env",
        ".gitignore",
        ".gitattributes",
        ".npmrc",
        ".editorconfig",
    }
)
