from __future__ import annotations
from typing import List
from xml.etree import ElementTree as ET

def get_ns(root):
    return {"s": root.tag.split('}')[0].strip('{')} if '}' in root.tag else {}

def FA(elem, tag, ns):
    return elem.iter(f"{{{ns['s']}}}{tag}") if ns else elem.iter(tag)

def class_tokens(elem) -> List[str]:
    return (elem.attrib.get("class") or "").split()

def parse_markup(markup: str):
    return ET.fromstring(markup)
