from storefront.models.restaurant import Restaurant
from storefront.models.menu_item import MenuItem
from storefront.models.inventory import InventoryItem, RecipeItem
from storefront.models.order import Order
from storefront.models.review import Review
