"""
Catalogue installé des couches WMS
Mise à jour : 2025-02-14

Une entrée par couche : serveur (URL), titre et nom de la couche, limites
géographiques en degrés ([sud, nord], [ouest, est]). Les titres des serveurs
sont regroupés dans WMS_SERVERS.

Le résumé, les codes CRS et les détails des couches ne font pas partie du
catalogue : ils ne sont connus qu'en interrogeant le serveur.
"""

CATALOG_VERSION = "2025.2"
LAST_UPDATE = "2025-02-14"

# URL du serveur -> titre du serveur
WMS_SERVERS = {
    "https://data.geopf.fr/wms-r": "Géoplateforme IGN - WMS Raster",
    "https://gibs.earthdata.nasa.gov/wms/epsg4326/best/wms.cgi": "NASA Global Imagery Browse Services for EOSDIS",
    "https://svs.gsfc.nasa.gov/cgi-bin/wms": "NASA SVS Image Server",
    "https://basemap.nationalmap.gov/arcgis/services/USGSTopo/MapServer/WMSServer": "USGS Topo Base Map",
    "https://elevation.nationalmap.gov/arcgis/services/3DEPElevation/ImageServer/WMSServer": "USGS 3DEP Elevation",
    "https://wms.gebco.net/mapserv": "GEBCO Web Map Service",
    "https://ows.terrestris.de/osm/service": "OpenStreetMap WMS - by terrestris",
    "https://ows.mundialis.de/services/service": "mundialis WMS",
    "https://nowcoast.noaa.gov/geoserver/ows": "NOAA nowCOAST",
}

WMS_LAYERS = [
    # === GÉOPLATEFORME IGN ===
    {
        "server_url": "https://data.geopf.fr/wms-r",
        "layer_title": "Photographies aériennes",
        "layer_name": "ORTHOIMAGERY.ORTHOPHOTOS",
        "latlim": [-21.4, 51.2],
        "lonlim": [-63.4, 55.9],
    },
    {
        "server_url": "https://data.geopf.fr/wms-r",
        "layer_title": "Plan IGN V2",
        "layer_name": "GEOGRAPHICALGRIDSYSTEMS.PLANIGNV2",
        "latlim": [-21.4, 51.2],
        "lonlim": [-63.4, 55.9],
    },
    {
        "server_url": "https://data.geopf.fr/wms-r",
        "layer_title": "Parcelles cadastrales",
        "layer_name": "CADASTRALPARCELS.PARCELLAIRE_EXPRESS",
        "latlim": [41.3, 51.1],
        "lonlim": [-5.2, 9.6],
    },
    {
        "server_url": "https://data.geopf.fr/wms-r",
        "layer_title": "Altitudes (MNT colorisé)",
        "layer_name": "ELEVATION.ELEVATIONGRIDCOVERAGE",
        "latlim": [41.3, 51.1],
        "lonlim": [-5.2, 9.6],
    },
    {
        "server_url": "https://data.geopf.fr/wms-r",
        "layer_title": "Hydrographie",
        "layer_name": "HYDROGRAPHY.HYDROGRAPHY",
        "latlim": [41.3, 51.1],
        "lonlim": [-5.2, 9.6],
    },
    {
        "server_url": "https://data.geopf.fr/wms-r",
        "layer_title": "Carte de Cassini (XVIIIe siècle)",
        "layer_name": "GEOGRAPHICALGRIDSYSTEMS.CASSINI",
        "latlim": [42.3, 51.1],
        "lonlim": [-4.8, 8.3],
    },

    # === NASA GIBS ===
    {
        "server_url": "https://gibs.earthdata.nasa.gov/wms/epsg4326/best/wms.cgi",
        "layer_title": "Corrected Reflectance (True Color, MODIS, Terra)",
        "layer_name": "MODIS_Terra_CorrectedReflectance_TrueColor",
        "latlim": [-90, 90],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://gibs.earthdata.nasa.gov/wms/epsg4326/best/wms.cgi",
        "layer_title": "Sea Surface Temperature (L4, MUR)",
        "layer_name": "GHRSST_L4_MUR_Sea_Surface_Temperature",
        "latlim": [-90, 90],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://gibs.earthdata.nasa.gov/wms/epsg4326/best/wms.cgi",
        "layer_title": "Land Surface Temperature (Day, MODIS, Aqua)",
        "layer_name": "MODIS_Aqua_Land_Surface_Temp_Day",
        "latlim": [-90, 90],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://gibs.earthdata.nasa.gov/wms/epsg4326/best/wms.cgi",
        "layer_title": "Snow Cover (Daily, MODIS, Terra)",
        "layer_name": "MODIS_Terra_NDSI_Snow_Cover",
        "latlim": [-90, 90],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://gibs.earthdata.nasa.gov/wms/epsg4326/best/wms.cgi",
        "layer_title": "Sea Ice Concentration (AMSR2, Arctic)",
        "layer_name": "AMSR2_Sea_Ice_Concentration_12km",
        "latlim": [30, 90],
        "lonlim": [-180, 180],
    },

    # === NASA SVS ===
    {
        "server_url": "https://svs.gsfc.nasa.gov/cgi-bin/wms",
        "layer_title": "Blue Marble Next Generation",
        "layer_name": "BlueMarbleNG",
        "latlim": [-90, 90],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://svs.gsfc.nasa.gov/cgi-bin/wms",
        "layer_title": "Global Temperature Anomalies 1880-2020",
        "layer_name": "3901_24775",
        "latlim": [-90, 90],
        "lonlim": [0, 360],
    },
    {
        "server_url": "https://svs.gsfc.nasa.gov/cgi-bin/wms",
        "layer_title": "Annual Sea Surface Temperature",
        "layer_name": "3652_20950",
        "latlim": [-90, 90],
        "lonlim": [0, 360],
    },
    {
        "server_url": "https://svs.gsfc.nasa.gov/cgi-bin/wms",
        "layer_title": "Pacific Ocean Surface Currents",
        "layer_name": "3827_23000",
        "latlim": [-60, 60],
        "lonlim": [120, 290],
    },

    # === USGS ===
    {
        "server_url": "https://basemap.nationalmap.gov/arcgis/services/USGSTopo/MapServer/WMSServer",
        "layer_title": "USGS Topo",
        "layer_name": "0",
        "latlim": [-14.6, 71.4],
        "lonlim": [-179.2, 179.8],
    },
    {
        "server_url": "https://elevation.nationalmap.gov/arcgis/services/3DEPElevation/ImageServer/WMSServer",
        "layer_title": "3DEP Elevation: Hillshade Gray",
        "layer_name": "3DEPElevation:Hillshade Gray",
        "latlim": [-14.6, 71.4],
        "lonlim": [-179.2, 179.8],
    },
    {
        "server_url": "https://elevation.nationalmap.gov/arcgis/services/3DEPElevation/ImageServer/WMSServer",
        "layer_title": "3DEP Elevation: Slope Degrees",
        "layer_name": "3DEPElevation:Slope Degrees",
        "latlim": [-14.6, 71.4],
        "lonlim": [-179.2, 179.8],
    },
    {
        "server_url": "https://elevation.nationalmap.gov/arcgis/services/3DEPElevation/ImageServer/WMSServer",
        "layer_title": "3DEP Elevation: Contour 25",
        "layer_name": "3DEPElevation:Contour 25",
        "latlim": [24.5, 49.4],
        "lonlim": [-124.8, -66.9],
    },

    # === GEBCO ===
    {
        "server_url": "https://wms.gebco.net/mapserv",
        "layer_title": "GEBCO Grid shaded relief",
        "layer_name": "GEBCO_LATEST",
        "latlim": [-90, 90],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://wms.gebco.net/mapserv",
        "layer_title": "GEBCO Grid elevation (bathymetry and topography)",
        "layer_name": "GEBCO_LATEST_2",
        "latlim": [-90, 90],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://wms.gebco.net/mapserv",
        "layer_title": "GEBCO Type Identifier Grid",
        "layer_name": "GEBCO_LATEST_TID",
        "latlim": [-90, 90],
        "lonlim": [-180, 180],
    },

    # === OPENSTREETMAP (terrestris, mundialis) ===
    {
        "server_url": "https://ows.terrestris.de/osm/service",
        "layer_title": "OpenStreetMap WMS",
        "layer_name": "OSM-WMS",
        "latlim": [-88, 88],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://ows.terrestris.de/osm/service",
        "layer_title": "OpenStreetMap WMS - Overlay (roads, rivers)",
        "layer_name": "OSM-Overlay-WMS",
        "latlim": [-88, 88],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://ows.terrestris.de/osm/service",
        "layer_title": "SRTM30 Hillshade",
        "layer_name": "SRTM30-Hillshade",
        "latlim": [-60, 60],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://ows.mundialis.de/services/service",
        "layer_title": "TOPO-OSM-WMS",
        "layer_name": "TOPO-OSM-WMS",
        "latlim": [-88, 88],
        "lonlim": [-180, 180],
    },
    {
        "server_url": "https://ows.mundialis.de/services/service",
        "layer_title": "SRTM30 Colored Hillshade",
        "layer_name": "SRTM30-Colored-Hillshade",
        "latlim": [-60, 60],
        "lonlim": [-180, 180],
    },

    # === NOAA ===
    {
        "server_url": "https://nowcoast.noaa.gov/geoserver/ows",
        "layer_title": "Weather Radar Reflectivity (Mosaic)",
        "layer_name": "weather_radar:base_reflectivity_mosaic",
        "latlim": [13.0, 60.0],
        "lonlim": [-170.0, -60.0],
    },
    {
        "server_url": "https://nowcoast.noaa.gov/geoserver/ows",
        "layer_title": "Sea Surface Temperature (Global, Analysis)",
        "layer_name": "ocean_temperature:global_sst",
        "latlim": [-78.0, 88.0],
        "lonlim": [0, 360],
    },
    {
        "server_url": "https://nowcoast.noaa.gov/geoserver/ows",
        "layer_title": "Surface Air Temperature Forecast (NDFD)",
        "layer_name": "ndfd_temperature:air_temperature",
        "latlim": [18.0, 52.0],
        "lonlim": [-130.0, -60.0],
    },
    {
        "server_url": "https://nowcoast.noaa.gov/geoserver/ows",
        "layer_title": "Rivers Observations (Water Level)",
        "layer_name": "observations:river_stage",
        "latlim": [17.0, 72.0],
        "lonlim": [-170.0, -64.0],
    },
]


def iter_catalog_rows():
    """Entrées du catalogue avec le titre du serveur, dans l'ordre du catalogue."""
    for layer in WMS_LAYERS:
        yield {
            "server_title": WMS_SERVERS.get(layer["server_url"], ""),
            **layer,
        }


def get_catalog_stats() -> dict:
    """Statistiques du catalogue installé"""
    return {
        "layers_count": len(WMS_LAYERS),
        "servers_count": len({layer["server_url"] for layer in WMS_LAYERS}),
        "version": CATALOG_VERSION,
        "last_update": LAST_UPDATE,
    }
