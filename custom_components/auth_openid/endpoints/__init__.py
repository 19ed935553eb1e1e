"""Imports manager"""

from .callback import OpenIDCallbackView as OpenIDCallbackView
from .finish import OpenIDFinishView as OpenIDFinishView
from .redirect import OpenIDRedirectView as OpenIDRedirectView
from .welcome import OpenIDWelcomeView as OpenIDWelcomeView
