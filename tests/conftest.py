import os

# The web app builds its store from the environment at import time.
os.environ.setdefault("QREDI_DATABASE_URL", "sqlite://")
os.environ.pop("QREDI_SHORTENER_TOKEN", None)

import pytest


@pytest.fixture
def extraction_reply():
    return {
        "monto": 2000000,
        "valor_tasa": 2,
        "tipo_tasa": "efectiva",
        "periodo": "mensual",
        "plazo_unidad_de_tiempo": 1095,
    }
