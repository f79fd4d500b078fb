"""Response builders shared by the tests."""


def new_file(path: str, body: str, lang: str = "html") -> str:
    return f"<<<<<<< NEW_FILE_START {path} >>>>>>> NEW_FILE_END\n```{lang}\n{body}\n```\n"


def search_replace(search: str, replace: str) -> str:
    s = f"{search}\n" if search else ""
    r = f"{replace}\n" if replace else ""
    return f"<<<<<<< SEARCH\n{s}=======\n{r}>>>>>>> REPLACE\n"


def update_file(path: str, *ops) -> str:
    out = f"<<<<<<< UPDATE_FILE_START {path} >>>>>>> UPDATE_FILE_END\n"
    for search, replace in ops:
        out += search_replace(search, replace)
    return out


def project_name(name: str) -> str:
    return f"<<<<<<< PROJECT_NAME_START {name} >>>>>>> PROJECT_NAME_END\n"
