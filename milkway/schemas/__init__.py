from milkway.schemas.common import ApiModel, GeoPoint, HealthResponse, MessageResponse, PageInfo  # noqa: F401
from milkway.schemas.user import (  # noqa: F401
    AuthResponse,
    UserLogin,
    UserPrivate,
    UserRegister,
    UserStats,
    UserSummary,
)
from milkway.schemas.farm import (  # noqa: F401
    FarmCollectionResponse,
    FarmCreate,
    FarmListResponse,
    FarmMutationResponse,
    FarmOut,
    FarmUpdate,
)
from milkway.schemas.review import (  # noqa: F401
    ReviewCreate,
    ReviewListResponse,
    ReviewMutationResponse,
    ReviewOut,
    ReviewStatistics,
    ReviewUpdate,
)
from milkway.schemas.wishlist import (  # noqa: F401
    WishlistAdd,
    WishlistCheck,
    WishlistOut,
    WishlistStats,
)
