from .arbfloat import *
from .arbfloat import __all__
