"""HoopWrangle

Tabular data wrangling explained on basketball statistics.

HoopWrangle was started as the companion code of a data wrangling workshop,
to showcase how the most common transformations applied to tabular data
(selecting, filtering, deriving new columns, grouping and aggregating,
sorting, renaming, dropping missing values and joining) actually work.

The project is constituted by multiple components, each isolated within its own
package and each self documented in literate programming style.

The primary components are:

* The Compute Engine, in charge of executing the transformations on the data.
* The Dataframe API, which provides an high level API for the compute engine.
* The Walkthrough, a narrative script applying the Dataframe API
  to a season of basketball statistics.

For the user guide and code documentation of each component, refer to the
component itself.
"""

from . import compute, errors

__all__ = ("compute", "errors")
