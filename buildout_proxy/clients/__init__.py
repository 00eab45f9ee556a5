# Clients package
from buildout_proxy.clients.buildout_client import BuildoutClient
from buildout_proxy.clients.proxy_client import ProxyClient
