"""
Rich text parsing.

The editor produces a small HTML dialect (paragraphs, headings, lists,
bold/italic/underline/strike, links, line breaks). Both the PDF and the
DOCX exporters need that HTML as plain block/run structures, so it is
parsed once here with BeautifulSoup.
"""

import re
from dataclasses import dataclass, field, replace
from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

BLOCK_TAGS = {'p', 'div', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'blockquote', 'pre', 'header', 'footer', 'section'}
LIST_TAGS = {'ul', 'ol'}
INLINE_FORMATS = {
    'strong': 'bold', 'b': 'bold',
    'em': 'italic', 'i': 'italic',
    'u': 'underline', 'ins': 'underline',
    's': 'strike', 'strike': 'strike', 'del': 'strike',
}
ALIGN_CLASSES = {
    'ql-align-center': 'center',
    'ql-align-right': 'right',
    'ql-align-justify': 'justify',
}

_WHITESPACE = re.compile(r'\s+')


@dataclass(frozen=True)
class Run:
    """A span of text sharing one format. text == '\\n' is a line break."""
    text: str = ''
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    href: Optional[str] = None
    image: Optional[str] = None

    @property
    def is_break(self) -> bool:
        return self.text == '\n'


@dataclass
class Block:
    """A paragraph-level element: p, h1-h6, li, blockquote, pre or img."""
    tag: str
    runs: List[Run] = field(default_factory=list)
    list_style: Optional[str] = None  # 'bullet' or 'ordered'
    number: Optional[int] = None
    align: Optional[str] = None
    css_class: Optional[str] = None

    @property
    def text(self) -> str:
        return ''.join(run.text for run in self.runs)

    @property
    def is_empty(self) -> bool:
        return not any(run.text.strip() or run.image for run in self.runs)


def _alignment(tag: Tag) -> Optional[str]:
    for css_class in tag.get('class') or []:
        if css_class in ALIGN_CLASSES:
            return ALIGN_CLASSES[css_class]
    style = tag.get('style') or ''
    match = re.search(r'text-align\s*:\s*(left|right|center|justify)', style)
    return match.group(1) if match else None


def _collect_runs(node: Tag, base: Run, preserve: bool = False) -> List[Run]:
    runs = []
    for child in node.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, NavigableString):
            text = str(child) if preserve else _WHITESPACE.sub(' ', str(child))
            if text:
                runs.append(replace(base, text=text))
            continue
        if not isinstance(child, Tag):
            continue
        name = child.name.lower()
        if name == 'br':
            runs.append(replace(base, text='\n'))
        elif name == 'img':
            if child.get('src'):
                runs.append(replace(base, text='', image=child['src']))
        elif name in INLINE_FORMATS:
            runs.extend(_collect_runs(child, replace(base, **{INLINE_FORMATS[name]: True}), preserve))
        elif name == 'a':
            runs.extend(_collect_runs(child, replace(base, href=child.get('href')), preserve))
        else:
            runs.extend(_collect_runs(child, base, preserve))
    return runs


def _trim(runs: List[Run]) -> List[Run]:
    """Drop whitespace HTML would not render at the edges of a block."""
    runs = list(runs)
    if runs and not runs[0].is_break and not runs[0].image:
        runs[0] = replace(runs[0], text=runs[0].text.lstrip())
    if runs and not runs[-1].is_break and not runs[-1].image:
        runs[-1] = replace(runs[-1], text=runs[-1].text.rstrip())
    return [run for run in runs if run.text or run.image]


def _has_blocks(tag: Tag) -> bool:
    return any(isinstance(c, Tag) and (c.name in BLOCK_TAGS or c.name in LIST_TAGS or c.name == 'table')
               for c in tag.children)


def _walk(node: Tag, blocks: List[Block]) -> None:
    loose: List[Run] = []

    def flush():
        runs = _trim(loose)
        if runs:
            blocks.append(Block('p', runs))
        loose.clear()

    for child in node.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, NavigableString):
            text = _WHITESPACE.sub(' ', str(child))
            if text.strip() or loose:
                loose.append(Run(text))
            continue
        if not isinstance(child, Tag):
            continue

        name = child.name.lower()
        if name in LIST_TAGS:
            flush()
            style = 'ordered' if name == 'ol' else 'bullet'
            for number, li in enumerate(child.find_all('li', recursive=False), 1):
                blocks.append(Block('li', _trim(_collect_runs(li, Run())),
                                    list_style=style, number=number, align=_alignment(li)))
        elif name in BLOCK_TAGS:
            flush()
            if _has_blocks(child):
                _walk(child, blocks)
            else:
                runs = _collect_runs(child, Run(), preserve=(name == 'pre'))
                blocks.append(Block(name if name != 'div' else 'p', _trim(runs) if name != 'pre' else runs,
                                    align=_alignment(child),
                                    css_class=' '.join(child.get('class') or []) or None))
        elif name == 'img':
            flush()
            if child.get('src'):
                blocks.append(Block('img', [Run(image=child['src'])], css_class=' '.join(child.get('class') or []) or None))
        elif name == 'br':
            flush()
        elif name in ('script', 'style', 'head', 'title', 'meta'):
            continue
        elif name in ('html', 'body', 'table', 'tbody', 'thead', 'tr', 'td', 'th'):
            flush()
            _walk(child, blocks)
        else:
            loose.extend(_collect_runs_wrapped(child))
    flush()


def _collect_runs_wrapped(tag: Tag) -> List[Run]:
    """Runs of an inline element met outside any block, keeping its own format."""
    name = tag.name.lower()
    base = Run()
    if name in INLINE_FORMATS:
        base = replace(base, **{INLINE_FORMATS[name]: True})
    elif name == 'a':
        base = replace(base, href=tag.get('href'))
    return _collect_runs(tag, base)


def parse_blocks(html: Optional[str]) -> List[Block]:
    """
    Parse rich text HTML into blocks.

    Examples:
        "<p>Hello <b>world</b></p>" -> [Block('p', [Run('Hello '), Run('world', bold=True)])]
        "<ul><li>a</li><li>b</li></ul>" -> two 'li' blocks with list_style 'bullet'
    """
    if not html:
        return []
    soup = BeautifulSoup(html, 'html.parser')
    blocks: List[Block] = []
    _walk(soup, blocks)
    return blocks
