import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from rest_framework_simplejwt.tokens import AccessToken

from apps.utils.exceptions import InvalidArgument, NotFound, Unauthorized
from apps.utils.validators import validate_email, validate_not_empty, validate_password
from .models import User, Role
from .permissions import require_any_role, require_self_or_admin

logger = logging.getLogger(__name__)


class AccountService:

    @staticmethod
    def register(name: str, email: str, password: str) -> User:
        """
        Registers a new account. Self-registration always yields a CUSTOMER.
        """
        name = validate_not_empty(name, "name")
        email = validate_email(email)
        validate_password(password)

        logger.info(f"Registering new user with email: {email}")

        if User.objects.filter(email__iexact=email).exists():
            logger.warning(f"Registration failed: Email already exists {email}")
            raise InvalidArgument("email", "Email already registered")

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    email=email,
                    password=password,
                    name=name,
                    role=Role.CUSTOMER,
                )
        except IntegrityError:
            # Lost a race against a concurrent registration with the same email
            raise InvalidArgument("email", "Email already registered")

        logger.info(f"User registered successfully with id: {user.id}")
        return user

    @staticmethod
    def login(email: str, password: str) -> dict:
        """
        Verifies credentials and issues a signed access token carrying
        the user's id, email and role.
        """
        email = (email or "").strip().lower()
        logger.info(f"User login attempt for email: {email}")

        user = User.objects.filter(email__iexact=email, is_active=True).first()
        if user is None:
            logger.warning(f"Login failed: User not found with email {email}")
            raise Unauthorized()

        if not user.check_password(password or ""):
            logger.warning(f"Login failed: Invalid password for email {email}")
            raise Unauthorized()

        token = AccessToken.for_user(user)
        token["role"] = user.role
        token["email"] = user.email

        logger.info(f"User logged in successfully: {user.email}")
        return {
            "token": str(token),
            "type": "Bearer",
            "user": user,
        }

    @staticmethod
    def get_user_entity(user_id) -> User:
        try:
            return User.objects.get(pk=user_id)
        except (User.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound("User", user_id)

    @staticmethod
    def get_user(target_user_id, acting_user_id, acting_role) -> User:
        logger.info(f"Fetching user details for id: {target_user_id}")
        require_self_or_admin(acting_role, acting_user_id, target_user_id)
        return AccountService.get_user_entity(target_user_id)

    @staticmethod
    def get_profile(acting_user_id, acting_role) -> User:
        require_any_role(acting_role, Role.ADMIN, Role.CUSTOMER)
        return AccountService.get_user_entity(acting_user_id)
