# -*- mode: python -*-
from django.urls import path

from spiders import api_views

app_name = "spiders"
urlpatterns = [
    path("api/info/", api_views.info, name="api_info"),
    path("api/specimens/", api_views.SpecimenList.as_view(), name="specimens_api"),
    path(
        "api/specimens/<uuid:pk>/",
        api_views.specimen_detail,
        name="specimen_api",
    ),
    path(
        "api/specimens/<uuid:pk>/offspring/",
        api_views.SpecimenOffspringList.as_view(),
        name="offspring_api",
    ),
    path(
        "api/specimens/<uuid:pk>/partners/",
        api_views.SpecimenPartnerList.as_view(),
        name="partners_api",
    ),
    path(
        "api/specimens/<uuid:pk>/events/",
        api_views.specimen_events,
        name="specimen_events_api",
    ),
    path("api/specimens/<uuid:pk>/molts/", api_views.specimen_molts, name="molt_api"),
    path(
        "api/specimens/<uuid:pk>/matings/",
        api_views.specimen_matings,
        name="mating_api",
    ),
    path(
        "api/specimens/<uuid:pk>/cocoons/",
        api_views.specimen_cocoons,
        name="new_cocoon_api",
    ),
    path(
        "api/specimens/<uuid:pk>/feedings/",
        api_views.specimen_feedings,
        name="feeding_api",
    ),
    path(
        "api/specimens/<uuid:pk>/deceased/",
        api_views.specimen_deceased,
        name="deceased_api",
    ),
    path("api/events/", api_views.EventList.as_view(), name="events_api"),
    path("api/events/<int:pk>/", api_views.event_detail, name="event_api"),
    path("api/cocoons/upcoming/", api_views.upcoming_hatches, name="upcoming_api"),
    path(
        "api/cocoons/<int:pk>/incubate/",
        api_views.cocoon_incubate,
        name="incubate_api",
    ),
    path("api/cocoons/<int:pk>/fail/", api_views.cocoon_fail, name="fail_api"),
    path("api/cocoons/<int:pk>/hatch/", api_views.cocoon_hatch, name="hatch_api"),
    path("api/status/<str:category>/", api_views.batch_status, name="status_api"),
    path("api/feedings/", api_views.bulk_feedings, name="bulk_feeding_api"),
]
