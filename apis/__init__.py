# Flake8: noqa
from .partner_api_client import PartnerAPIClient, PartnerResponse
from .multicorban_api_client import MultiCorbanAPIClient
from .c6_api_client import C6APIClient
from .bempromotora_api_client import BemPromotoraAPIClient
from .safra_api_client import SafraAPIClient
