import logging
from functools import wraps

from django.contrib.auth import authenticate, login, logout
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from accounts.roles import serialize_user

logger = logging.getLogger(__name__)


def user_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return Response({'error': 'Unauthorized', 'code': 'unauthorized'},
                            status=status.HTTP_401_UNAUTHORIZED)
        return view_func(request, *args, **kwargs)
    return wrapper


@csrf_exempt
@api_view(["POST"])
def login_view(request):
    data = request.data if isinstance(request.data, dict) else {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return Response({'error': 'Username and password are required', 'code': 'validation_error'},
                        status=status.HTTP_400_BAD_REQUEST)

    user = authenticate(request._request, username=username, password=password)
    if user is None:
        logger.warning(f"Failed login for {username}")
        return Response({'error': 'Invalid credentials', 'code': 'unauthorized'},
                        status=status.HTTP_401_UNAUTHORIZED)

    login(request._request, user)
    logger.info(f"User {user.pk} logged in")

    return Response({'ok': True, 'user': serialize_user(user)})


@csrf_exempt
@api_view(["POST"])
def logout_view(request):
    user_id = request.user.pk if request.user.is_authenticated else None
    logout(request._request)
    if user_id:
        logger.info(f"User {user_id} logged out")
    return Response({'ok': True})


@csrf_exempt
@api_view(["GET"])
@user_required
def me_view(request):
    return Response({'user': serialize_user(request.user)})
