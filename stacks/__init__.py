from .settings import AppAttributes, DomainAttributes
from .ses_application_stack import SesApplicationStack
from .ses_config_stack import SesConfigStack

__all__ = ["AppAttributes", "DomainAttributes", "SesApplicationStack", "SesConfigStack"]
