from bs4 import Tag


def inner_text(el: Tag) -> str:
    """Text of *el* with <br> turned into newlines and each line trimmed."""
    for br in el.find_all("br"):
        br.replace_with("\n")
    lines = (line.strip() for line in el.get_text().split("\n"))
    return "\n".join(lines).strip()
