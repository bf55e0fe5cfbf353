# tools/scaffold.py
"""
Fixed boilerplate for a fresh project, including the placeholder root page
the agent is expected to replace.
"""
from __future__ import annotations

import json
from pathlib import Path

from agent.logger import log

PLACEHOLDER_MARKERS = ("Generating...", "AI is creating")

PLACEHOLDER_PAGE = """export default function Home() {
  return (
    <div className="min-h-screen flex items-center justify-center bg-gray-50">
      <div className="text-center">
        <h1 className="text-4xl font-bold text-gray-800">Generating...</h1>
        <p className="mt-4 text-gray-600">AI is creating your website</p>
      </div>
    </div>
  )
}
"""

_PACKAGE_JSON = {
    "name": "ai-generated-site",
    "version": "0.1.0",
    "private": True,
    "scripts": {
        "dev": "next dev",
        "build": "next build",
        "start": "next start",
        "lint": "next lint",
    },
    "dependencies": {"react": "^18", "react-dom": "^18", "next": "14.0.4"},
    "devDependencies": {
        "autoprefixer": "^10.0.1",
        "postcss": "^8",
        "tailwindcss": "^3.3.0",
        "eslint": "^8",
        "eslint-config-next": "14.0.4",
    },
}

_FILES = {
    "next.config.js": (
        "/** @type {import('next').NextConfig} */\n"
        "const nextConfig = {}\n\n"
        "module.exports = nextConfig\n"
    ),
    "tailwind.config.js": (
        "/** @type {import('tailwindcss').Config} */\n"
        "module.exports = {\n"
        "  content: [\n"
        "    './components/**/*.{js,ts,jsx,tsx,mdx}',\n"
        "    './app/**/*.{js,ts,jsx,tsx,mdx}',\n"
        "  ],\n"
        "  theme: { extend: {} },\n"
        "  plugins: [],\n"
        "}\n"
    ),
    "postcss.config.js": (
        "module.exports = {\n"
        "  plugins: { tailwindcss: {}, autoprefixer: {} },\n"
        "}\n"
    ),
    "app/layout.js": (
        "import './globals.css'\n\n"
        "export const metadata = {\n"
        "  title: 'AI Generated Site',\n"
        "  description: 'Created by Sitewright',\n"
        "}\n\n"
        "export default function RootLayout({ children }) {\n"
        "  return (\n"
        "    <html lang=\"en\">\n"
        "      <body>{children}</body>\n"
        "    </html>\n"
        "  )\n"
        "}\n"
    ),
    "app/globals.css": "@tailwind base;\n@tailwind components;\n@tailwind utilities;\n",
    ".gitignore": "node_modules\n.next\nout\n*.log\n.DS_Store\n.env*.local\n",
    "README.md": (
        "# AI Generated Site\n\n"
        "Generated by Sitewright.\n\n"
        "```bash\nnpm install\nnpm run dev\n```\n"
    ),
}


def is_placeholder(content: str) -> bool:
    return any(marker in content for marker in PLACEHOLDER_MARKERS)


def materialize(project_root: str | Path, store=None) -> list[str]:
    """
    Write the boilerplate tree. When a store is given the placeholder root
    page goes through it, so it gets the same conflict healing as any page.
    Returns the relative paths written.
    """
    root = Path(project_root)
    written: list[str] = []

    root.mkdir(parents=True, exist_ok=True)
    (root / "components").mkdir(exist_ok=True)
    (root / "public").mkdir(exist_ok=True)

    (root / "package.json").write_text(json.dumps(_PACKAGE_JSON, indent=2), encoding="utf-8")
    written.append("package.json")

    for rel, text in _FILES.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        written.append(rel)

    if store is not None:
        store.write_page("home", PLACEHOLDER_PAGE)
    else:
        (root / "app" / "page.js").write_text(PLACEHOLDER_PAGE, encoding="utf-8")
    written.append("app/page.js")

    log.info(f"[green]Scaffolded {len(written)} files in {root}[/green]")
    return written
