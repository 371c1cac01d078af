from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import GroupAdmin as BaseGroupAdmin, UserAdmin as BaseUserAdmin
from django.contrib.auth.models import Group
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin
from unfold.decorators import display
from unfold.forms import AdminPasswordChangeForm, UserChangeForm, UserCreationForm

from .roles import get_role, ROLES

User = get_user_model()

admin.site.unregister(User)
admin.site.unregister(Group)


@admin.register(User)
class UserAdmin(BaseUserAdmin, ModelAdmin):
    form = UserChangeForm
    add_form = UserCreationForm
    change_password_form = AdminPasswordChangeForm
    list_display = ['id', 'username', 'full_name', 'email', 'role_badge', 'is_active', 'last_login']

    @display(description=_("Name"), ordering='first_name')
    def full_name(self, obj):
        return f"{obj.first_name} {obj.last_name}".strip() or "-"

    @display(description=_("Role"), label={"Admin": "danger", "Manager": "warning", "User": "info"})
    def role_badge(self, obj):
        return ROLES[get_role(obj)]['name']


@admin.register(Group)
class GroupAdmin(BaseGroupAdmin, ModelAdmin):
    pass
