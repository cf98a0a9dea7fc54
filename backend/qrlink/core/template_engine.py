from fastapi.templating import Jinja2Templates
from datetime import datetime


def make_templates(directory: str, project_name: str) -> Jinja2Templates:
    templates = Jinja2Templates(directory=directory)

    # Expose globals to Jinja templates
    templates.env.globals.update({
        "datetime": datetime,
        "APP_NAME": project_name,
    })
    return templates
