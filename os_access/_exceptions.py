# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/


class ServiceNotFoundError(Exception):
    pass


class ServiceNotActive(Exception):
    pass


class PackageInstallError(Exception):
    pass


class ImageBuildError(Exception):
    pass
