"""
Package init for pcshop.server
"""

from pcshop.server.server import ShopServer
from pcshop.server.auth import SessionIssuer
from pcshop.server.userStore import UserStore

__all__ = ['ShopServer', 'SessionIssuer', 'UserStore']
