from modsquad.models.build import Build
from modsquad.models.image import BuildImage
from modsquad.models.profile import Profile
from modsquad.models.user import User

__all__ = ["User", "Profile", "Build", "BuildImage"]
