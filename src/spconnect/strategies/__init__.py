"""Built-in connection strategies, one sub-package per authentication mode.

Each sub-package exports a single :class:`~spconnect.auth.base.ConnectionStrategy`
subclass. :func:`~spconnect.auth.factory.create_default_factory` registers
all of them:

* ``token`` -- :class:`~spconnect.strategies.token.TokenStrategy`
* ``web_login`` -- :class:`~spconnect.strategies.web_login.WebLoginStrategy`
* ``adfs`` -- :class:`~spconnect.strategies.adfs.AdfsStrategy`
* ``native_aad`` -- :class:`~spconnect.strategies.native_aad.NativeAadStrategy`
* ``app_only_aad`` -- :class:`~spconnect.strategies.app_only_aad.AppOnlyAadStrategy`
* ``default`` -- :class:`~spconnect.strategies.default.DefaultStrategy`
"""
